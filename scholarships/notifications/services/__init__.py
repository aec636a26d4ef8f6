from .email_service import EMAILS, EmailService

__all__ = ["EMAILS", "EmailService"]
