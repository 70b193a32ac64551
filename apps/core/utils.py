# apps/core/utils.py

from datetime import datetime, time
from typing import Callable, Dict, Optional

from django.core.paginator import Paginator
from django.utils.dateparse import parse_date, parse_datetime
from django.utils import timezone

from .exceptions import ValidationFailed


def ler_inteiro(valor, padrao: Optional[int] = None, minimo: Optional[int] = None,
                maximo: Optional[int] = None) -> Optional[int]:
    """
    Converte parâmetro de query/corpo para int
    Valor ausente ou inválido -> padrao; depois aplica os limites
    """
    try:
        numero = int(valor)
    except (TypeError, ValueError):
        numero = padrao

    if numero is None:
        return None
    if minimo is not None:
        numero = max(numero, minimo)
    if maximo is not None:
        numero = min(numero, maximo)
    return numero


def exigir_id(valor, campo: str) -> int:
    """Id obrigatório (inteiro positivo) ou ValidationFailed"""
    if isinstance(valor, bool):
        raise ValidationFailed(f"{campo} must be an integer id.")
    try:
        numero = int(valor)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{campo} must be an integer id.")
    if numero <= 0:
        raise ValidationFailed(f"{campo} must be an integer id.")
    return numero


def ler_prazo(valor):
    """
    Aceita datetime ISO 8601 ou apenas a data (YYYY-MM-DD)
    None / '' limpa o prazo
    """
    if valor in (None, ''):
        return None
    if not isinstance(valor, str):
        raise ValidationFailed('Invalid deadline.')

    try:
        prazo = parse_datetime(valor)
        if prazo is None:
            data = parse_date(valor)
            if data is None:
                raise ValidationFailed('Invalid deadline.')
            prazo = datetime.combine(data, time.min)
    except ValueError:
        raise ValidationFailed('Invalid deadline.')

    if timezone.is_naive(prazo):
        prazo = timezone.make_aware(prazo)
    return prazo


def paginar(queryset, page, limit, serializar: Callable) -> Dict:
    """
    Página no formato {data, page, limit, total, totalPages}

    Página além da última devolve data vazia (não é erro).
    """
    paginator = Paginator(queryset, limit)

    if page <= paginator.num_pages:
        itens = [serializar(obj) for obj in paginator.page(page).object_list]
    else:
        itens = []

    return {
        'data': itens,
        'page': page,
        'limit': limit,
        'total': paginator.count,
        'totalPages': paginator.num_pages,
    }
