#!/usr/bin/env python
"""
Django's command-line utility for administrative tasks.

Fluxo Board - Kanban colaborativo em tempo real
"""

import os
import sys


def main():
    """Run administrative tasks."""

    # Configuração padrão para desenvolvimento
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    # Comandos customizados do Fluxo Board
    if len(sys.argv) > 1:
        command = sys.argv[1]

        # Comando de setup inicial
        if command == 'setup':
            print("🚀 Configurando Fluxo Board...")

            print("📊 Aplicando migrações...")
            if os.system(f'{sys.executable} manage.py migrate') != 0:
                print("❌ Erro nas migrações")
                return

            print("📁 Coletando arquivos estáticos...")
            os.system(f'{sys.executable} manage.py collectstatic --noinput')

            print("🔍 Verificando posições das tarefas...")
            os.system(f'{sys.executable} manage.py check_positions')

            print("✅ Setup concluído!")
            return

        # Comando de configuração do banco
        elif command == 'setup-db':
            print("🐘 Configurando PostgreSQL...")

            commands = [
                "CREATE USER fluxo_user WITH PASSWORD 'fluxo123';",
                "CREATE DATABASE fluxo_board OWNER fluxo_user;",
                "GRANT ALL PRIVILEGES ON DATABASE fluxo_board TO fluxo_user;",
                "ALTER USER fluxo_user CREATEDB;"
            ]

            for cmd in commands:
                print(f"Executando: {cmd}")
                exit_code = os.system(f'psql -U postgres -h localhost -c "{cmd}"')
                if exit_code != 0:
                    print("⚠️  Comando pode ter falhado (normal se já existir)")

            print("🧪 Testando conexão...")
            test_result = os.system('psql -U fluxo_user -h localhost -d fluxo_board -c "SELECT version();"')

            if test_result == 0:
                print("✅ PostgreSQL configurado com sucesso!")
                print("📊 Execute agora: python manage.py setup")
            else:
                print("❌ Erro na configuração. Verifique se o PostgreSQL está rodando e o psql no PATH")
            return

    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
