#!/usr/bin/env python3
"""
Gera o secret de sessão do Quadro.
Use antes de fazer deploy em produção.
"""

import argparse
import secrets


def generate_session_secret(num_bytes: int = 32) -> str:
    """Secret aleatório, seguro para URL, usado para assinar o cookie de sessão."""
    return secrets.token_urlsafe(num_bytes)


def main():
    parser = argparse.ArgumentParser(description="Gera secrets para o .env do Quadro.")
    parser.add_argument("--bytes", type=int, default=32, help="Tamanho do secret em bytes (padrão: 32).")
    parser.add_argument("--env-only", action="store_true", help="Imprime só a linha do .env.")
    args = parser.parse_args()

    line = f"QUADRO_SESSION_SECRET={generate_session_secret(args.bytes)}"
    if args.env_only:
        print(line)
        return

    print("=" * 60)
    print("QUADRO - Gerador de Secrets")
    print("=" * 60)
    print()
    print("📝 Copie para o seu .env:\n")
    print("# Assina o cookie de sessão; trocar invalida todos os logins")
    print(line)
    print()
    print("=" * 60)
    print("⚠️  IMPORTANTE:")
    print("- NÃO commite no Git")
    print("- Use valores diferentes em dev e produção")
    print("=" * 60)


if __name__ == "__main__":
    main()
