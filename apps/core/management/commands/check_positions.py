# apps/core/management/commands/check_positions.py

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.board.ledger import position_ledger
from apps.core.models import Board, TaskList


class Command(BaseCommand):
    help = 'Verifica se as posições das tarefas de cada lista formam 0..n-1 (opcionalmente corrige)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--board',
            type=int,
            help='Verificar apenas as listas deste board'
        )
        parser.add_argument(
            '--repair',
            action='store_true',
            help='Compactar as listas com buracos ou posições repetidas'
        )

    def handle(self, *args, **options):
        """
        Percorre as listas e reporta as que violam a sequência densa
        """
        listas = TaskList.objects.select_related('board').order_by('board_id', 'position', 'id')

        if options['board'] is not None:
            if not Board.objects.filter(pk=options['board']).exists():
                raise CommandError(f"Board {options['board']} não encontrado")
            listas = listas.filter(board_id=options['board'])

        self.stdout.write('🔍 Verificando posições das tarefas...')

        total = 0
        invalidas = []
        for lista in listas:
            total += 1
            if not position_ledger.verificar(lista.id):
                invalidas.append(lista)
                posicoes = list(lista.tasks.order_by('position', 'id').values_list('position', flat=True))
                self.stdout.write(
                    self.style.WARNING(
                        f'  ⚠️  Lista {lista.id} "{lista.title}" (board {lista.board_id}): {posicoes}'
                    )
                )

        if not invalidas:
            self.stdout.write(self.style.SUCCESS(f'✅ {total} lista(s) verificada(s), nenhuma inconsistência'))
            return

        if not options['repair']:
            self.stdout.write(
                self.style.ERROR(
                    f'❌ {len(invalidas)} de {total} lista(s) com posições inválidas. '
                    f'Use --repair para compactar.'
                )
            )
            return

        for lista in invalidas:
            with transaction.atomic():
                position_ledger.travar_listas(lista.id)
                alteradas = position_ledger.compactar(lista.id)
            self.stdout.write(f'  🔧 Lista {lista.id}: {len(alteradas)} tarefa(s) reposicionada(s)')

        self.stdout.write(self.style.SUCCESS(f'✅ {len(invalidas)} lista(s) compactada(s)'))
