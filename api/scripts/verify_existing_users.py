#!/usr/bin/env python3
"""
Marca como verificados usuários que ainda não confirmaram o email.

Útil em ambientes de desenvolvimento sem SMTP, onde o link de verificação
nunca chega e o login fica bloqueado.

Uso:
    python scripts/verify_existing_users.py
    python scripts/verify_existing_users.py --email bob@example.com --yes
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select, update

from quadro.core.security import normalize_email
from quadro.db.session import SessionLocal
from quadro.models.user import AppUser


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Confirma o email de usuários pendentes.")
    parser.add_argument("--email", action="append", default=[], help="Limita a estes emails (pode repetir).")
    parser.add_argument("--yes", action="store_true", help="Não pede confirmação.")
    return parser.parse_args()


async def main(args: argparse.Namespace) -> None:
    print("=" * 60)
    print("QUADRO - Verificar Usuários Pendentes")
    print("=" * 60)
    print()

    filters = [AppUser.email_verified.is_(False)]
    if args.email:
        filters.append(AppUser.email.in_([normalize_email(email) for email in args.email]))

    async with SessionLocal() as db:
        result = await db.execute(select(AppUser).where(*filters).order_by(AppUser.created_at))
        pending = result.scalars().all()

        if not pending:
            print("✅ Nenhum usuário pendente de verificação.")
            return

        print(f"📊 {len(pending)} usuário(s) sem email confirmado:")
        print()
        for user in pending:
            print(f"  • {user.email:40} | {user.name or '-'}")
        print()

        if not args.yes:
            confirm = input("Marcar todos como verificados? (s/N): ").strip().lower()
            if confirm != "s":
                print("❌ Operação cancelada")
                return

        result = await db.execute(
            update(AppUser)
            .where(*filters)
            .values(
                email_verified=True,
                email_verification_token=None,
                email_verification_token_expires=None,
            )
        )
        await db.commit()

        print()
        print(f"✅ {result.rowcount} usuário(s) marcados como verificados!")


if __name__ == "__main__":
    try:
        asyncio.run(main(parse_args()))
    except KeyboardInterrupt:
        print("\n\n❌ Operação cancelada pelo usuário")
        sys.exit(1)
