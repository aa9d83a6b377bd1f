import pytest

from quadro.core.config import settings
from quadro.services import email as email_service
from quadro.services.email import DeliveryFailure, send_email, send_invitation_email


@pytest.mark.anyio
async def test_send_email_is_skipped_without_smtp(monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "")

    assert await send_email("bob@example.com", "Assunto", "<p>oi</p>") is False


@pytest.mark.anyio
async def test_send_email_wraps_provider_errors(monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "smtp.example.com")

    async def broken_send(self, message):
        raise ConnectionRefusedError("sem conexão")

    monkeypatch.setattr(email_service.FastMail, "send_message", broken_send)

    with pytest.raises(DeliveryFailure):
        await send_email("bob@example.com", "Assunto", "<p>oi</p>")


@pytest.mark.anyio
async def test_invitation_email_escapes_user_content(monkeypatch):
    captured = {}

    async def fake_send_email(to, subject, html_body):
        captured.update(to=to, subject=subject, html_body=html_body)
        return True

    monkeypatch.setattr(email_service, "send_email", fake_send_email)

    delivered = await send_invitation_email(
        to_email="bob@example.com",
        role="contributor",
        project_name="<script>Alpha</script>",
        inviter_name="Owner & Cia",
        acceptance_url="http://localhost:5173/accept-invitation?token=abc",
    )

    assert delivered is True
    assert captured["to"] == "bob@example.com"
    body = captured["html_body"]
    assert "<script>" not in body
    assert "&lt;script&gt;Alpha&lt;/script&gt;" in body
    assert "Owner &amp; Cia" in body
    assert "Colaborador" in body
    assert "accept-invitation?token=abc" in body
    assert 'name="referrer" content="no-referrer"' in body
