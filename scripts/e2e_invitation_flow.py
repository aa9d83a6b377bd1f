#!/usr/bin/env python3
"""
Teste E2E do fluxo de convites contra uma API rodando.

Fluxo:
1. Login do dono (conta já verificada)
2. Criar um projeto
3. Convidar um email (o convite é reenviado para testar a substituição)
4. Login do convidado e aceite com o token recebido por email
5. Conferir a lista de membros e que o token não pode ser reutilizado

Os dois usuários precisam existir e estar verificados
(veja api/scripts/verify_existing_users.py).
"""

import sys
from datetime import datetime
from urllib.parse import parse_qs, urlparse

import requests

BASE_URL = "http://localhost:8000"


def login(session: requests.Session, email: str, password: str) -> dict | None:
    print(f"🔐 Login como {email}...")
    resp = session.post(f"{BASE_URL}/api/auth/login", json={"email": email, "password": password})
    if resp.status_code != 200:
        print(f"❌ Erro no login: {resp.status_code} - {resp.text}")
        return None
    user = resp.json()
    print(f"✅ Login ok: {user.get('name') or user['email']}")
    return user


def create_project(session: requests.Session) -> str | None:
    print("\n📝 Criando projeto...")
    timestamp = datetime.now().strftime("%H:%M:%S")
    resp = session.post(
        f"{BASE_URL}/api/projects",
        json={"name": f"[E2E] Convites {timestamp}", "description": "Criado pelo script de teste."},
    )
    if resp.status_code != 201:
        print(f"❌ Erro ao criar projeto: {resp.status_code} - {resp.text}")
        return None
    project = resp.json()
    print(f"✅ Projeto criado: {project['id']}")
    return project["id"]


def invite(session: requests.Session, project_id: str, email: str, role: str) -> dict | None:
    print(f"\n✉️  Convidando {email} como {role}...")
    resp = session.post(
        f"{BASE_URL}/api/projects/{project_id}/invitations",
        json={"email": email, "role": role},
    )
    if resp.status_code != 201:
        print(f"❌ Erro ao convidar: {resp.status_code} - {resp.text}")
        return None
    data = resp.json()
    print(f"✅ Convite {data['id']} criado (email enviado: {data['email_sent']})")
    if data.get("warning"):
        print(f"   ⚠️  {data['warning']}")
    return data


def read_token() -> str:
    raw = input("\nCole o link (ou só o token) do email de convite: ").strip()
    if raw.startswith("http"):
        return parse_qs(urlparse(raw).query)["token"][0]
    return raw


def accept(session: requests.Session, token: str) -> dict:
    resp = session.post(f"{BASE_URL}/api/invitations/accept", json={"token": token})
    resp.raise_for_status()
    return resp.json()


def main():
    print("=" * 60)
    print("TESTE E2E: Fluxo de Convites")
    print("=" * 60)

    owner_email = input("Email do dono: ").strip() or "owner@example.com"
    owner_password = input("Senha do dono: ").strip() or "supersecret"
    guest_email = input("Email do convidado: ").strip() or "bob@example.com"
    guest_password = input("Senha do convidado: ").strip() or "supersecret"

    owner = requests.Session()
    guest = requests.Session()

    if not login(owner, owner_email, owner_password):
        sys.exit(1)

    project_id = create_project(owner)
    if not project_id:
        sys.exit(1)

    if not invite(owner, project_id, guest_email, "contributor"):
        sys.exit(1)
    # Segundo convite substitui o primeiro; só o último token vale
    if not invite(owner, project_id, guest_email, "owner"):
        sys.exit(1)

    pending = owner.get(f"{BASE_URL}/api/projects/{project_id}/invitations").json()
    print(f"\n🔍 Convites pendentes: {len(pending)} (esperado: 1)")

    if not login(guest, guest_email, guest_password):
        sys.exit(1)

    token = read_token()
    result = accept(guest, token)
    if not result["success"]:
        print(f"❌ Aceite falhou: {result['error_code']} - {result['error']}")
        sys.exit(1)
    print(f"✅ Convite aceito; projeto {result['project_id']}")

    members = owner.get(f"{BASE_URL}/api/projects/{project_id}/members").json()
    print("\n👥 Membros:")
    for member in members:
        print(f"   • {member['user_email']:40} | {member['role']}")

    again = accept(guest, token)
    if again["success"] or again["error_code"] != "already_accepted":
        print(f"❌ Reuso do token deveria falhar com already_accepted: {again}")
        sys.exit(1)
    print("\n✅ Token reutilizado foi recusado (already_accepted)")

    print("\n" + "=" * 60)
    print("✅ TESTE E2E CONCLUÍDO COM SUCESSO!")
    print("=" * 60)
    print(f"\n🔗 Quadro no frontend: http://localhost:5173/projects/{project_id}")


if __name__ == "__main__":
    main()
