"""
Serviço de envio de emails.

Entrega via SMTP usando fastapi-mail. Quando o SMTP não está configurado o
envio é pulado (e registrado em log); falhas de entrega viram
``DeliveryFailure`` para o chamador decidir se são fatais.
"""

import logging
from html import escape
from typing import List

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from pydantic import EmailStr

from quadro.core.config import settings

logger = logging.getLogger("quadro.email")

ROLE_NAMES = {
    "owner": "Dono",
    "contributor": "Colaborador",
}


class DeliveryFailure(Exception):
    """O provedor de email recusou ou não respondeu."""


def get_email_config() -> ConnectionConfig:
    """Retorna a configuração do FastMail baseada nas settings."""
    return ConnectionConfig(
        MAIL_USERNAME=settings.smtp_user,
        MAIL_PASSWORD=settings.smtp_password,
        MAIL_FROM=settings.smtp_from_email,
        MAIL_PORT=settings.smtp_port,
        MAIL_SERVER=settings.smtp_host,
        MAIL_FROM_NAME=settings.smtp_from_name,
        MAIL_STARTTLS=settings.smtp_use_tls,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=bool(settings.smtp_user and settings.smtp_password),
        VALIDATE_CERTS=True,
    )


async def send_email(
    to: List[EmailStr] | EmailStr,
    subject: str,
    html_body: str,
) -> bool:
    """
    Envia um email.

    Args:
        to: Email(s) do(s) destinatário(s)
        subject: Assunto do email
        html_body: Corpo HTML do email

    Returns:
        True se a mensagem foi entregue ao SMTP, False se o envio foi pulado
        por falta de configuração.

    Raises:
        DeliveryFailure: Se o servidor SMTP falhar
    """
    recipients = [to] if isinstance(to, str) else list(to)

    if not settings.smtp_host:
        logger.warning(
            "SMTP não configurado. Email NÃO foi enviado (para: %s, assunto: %s)",
            ", ".join(recipients),
            subject,
        )
        return False

    message = MessageSchema(
        subject=subject,
        recipients=recipients,
        body=html_body,
        subtype=MessageType.html,
    )

    fm = FastMail(get_email_config())

    try:
        await fm.send_message(message)
    except Exception as exc:
        logger.error("Erro ao enviar email para %s", ", ".join(recipients), exc_info=True)
        raise DeliveryFailure(str(exc)) from exc

    logger.info("Email enviado para: %s", ", ".join(recipients))
    return True


def _render_layout(title: str, content: str) -> str:
    return f"""
<!DOCTYPE html>
<html lang="pt-BR">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta name="referrer" content="no-referrer">
    <title>{title}</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.6;
            color: #333;
            max-width: 600px;
            margin: 0 auto;
            padding: 20px;
            background-color: #f5f5f5;
        }}
        .container {{
            background-color: white;
            border-radius: 8px;
            padding: 40px;
            box-shadow: 0 2px 4px rgba(0, 0, 0, 0.1);
        }}
        .logo {{
            text-align: center;
            font-size: 24px;
            font-weight: bold;
            color: #2563eb;
            margin-bottom: 30px;
        }}
        .info {{
            background-color: #f8fafc;
            border-left: 4px solid #2563eb;
            padding: 16px;
            margin: 24px 0;
            border-radius: 4px;
        }}
        .cta-button {{
            display: inline-block;
            background-color: #2563eb;
            color: white !important;
            padding: 12px 24px;
            text-decoration: none;
            border-radius: 6px;
            margin: 20px 0;
            font-weight: 500;
        }}
        .note {{
            background-color: #fef3c7;
            border-left: 4px solid #f59e0b;
            padding: 12px;
            margin: 20px 0;
            border-radius: 4px;
            font-size: 14px;
        }}
        .link-box {{
            background-color: #f8fafc;
            border: 1px solid #e5e7eb;
            padding: 12px;
            border-radius: 4px;
            font-family: monospace;
            font-size: 12px;
            word-break: break-all;
            color: #6b7280;
        }}
        .footer {{
            margin-top: 40px;
            padding-top: 20px;
            border-top: 1px solid #e5e7eb;
            text-align: center;
            font-size: 14px;
            color: #6b7280;
        }}
    </style>
</head>
<body>
    <div class="container">
        <div class="logo">Quadro</div>
        {content}
        <div class="footer">
            <p>Este é um email automático da plataforma Quadro.</p>
        </div>
    </div>
</body>
</html>
"""


async def send_invitation_email(
    to_email: str,
    role: str,
    project_name: str,
    inviter_name: str,
    acceptance_url: str,
) -> bool:
    """
    Envia o email de convite para um projeto.

    Args:
        to_email: Email do convidado
        role: Papel oferecido (owner, contributor)
        project_name: Nome do projeto
        inviter_name: Nome de quem enviou o convite
        acceptance_url: Link de aceite contendo o token
    """
    role_display = ROLE_NAMES.get(role, role)
    project_html = escape(project_name)
    inviter_html = escape(inviter_name)
    url_html = escape(acceptance_url, quote=True)

    content = f"""
        <h1>Você foi convidado para colaborar!</h1>

        <p><strong>{inviter_html}</strong> convidou você para o projeto:</p>

        <div class="info">
            <strong>{project_html}</strong><br>
            Papel: {role_display}<br>
            Convidado por: {inviter_html}
        </div>

        <div style="text-align: center;">
            <a href="{url_html}" class="cta-button" rel="noreferrer noopener">Aceitar convite</a>
        </div>

        <p style="font-size: 14px; color: #6b7280;">
            Se o botão não funcionar, copie e cole este link no seu navegador:
        </p>
        <div class="link-box">{url_html}</div>

        <div class="note">
            <strong>Importante:</strong> este convite expira em {settings.invitation_ttl_days} dias
            e só pode ser aceito por uma conta com o email {escape(to_email)}.
            Se você não esperava este convite, pode ignorar este email.
        </div>
"""

    return await send_email(
        to=to_email,
        subject=f'Convite para o projeto "{project_name}"',
        html_body=_render_layout("Convite para Projeto", content),
    )


async def send_email_verification(
    to_email: str,
    verification_token: str,
    user_name: str | None = None,
) -> bool:
    """
    Envia email de verificação de conta.

    Args:
        to_email: Email do usuário
        verification_token: Token de verificação gerado
        user_name: Nome do usuário (opcional)
    """
    verification_url = f"{settings.frontend_url}/verify-email?token={verification_token}"
    url_html = escape(verification_url, quote=True)
    greeting = f", {escape(user_name)}" if user_name else ""

    content = f"""
        <h1>Confirme seu endereço de email</h1>

        <p>Olá{greeting},</p>

        <p>Para começar a usar o Quadro, precisamos confirmar seu endereço de email.</p>

        <div style="text-align: center;">
            <a href="{url_html}" class="cta-button" rel="noreferrer noopener">Confirmar email</a>
        </div>

        <div class="note">
            <strong>Importante:</strong> este link expira em {settings.email_verification_ttl_hours} horas.
            Se você não criou esta conta, pode ignorar este email.
        </div>

        <div class="link-box">{url_html}</div>
"""

    return await send_email(
        to=to_email,
        subject="Confirme seu email - Quadro",
        html_body=_render_layout("Confirme seu Email", content),
    )
