import logging
from collections import defaultdict
from typing import Dict
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string
from apps.domain.interfaces.email_sender import EmailSender

logger = logging.getLogger('apps')


class DjangoEmailSender(EmailSender):
    SUBJECTS = {
        'signature_request': 'Assinatura solicitada: {document_title}',
        'signature_reminder': 'Lembrete: {document_title} aguarda sua assinatura',
        'document_completed': 'Documento concluído: {document_title}',
        'recipient_completed': 'Cópia do documento concluído: {document_title}',
        'signature_declined': '{signer_name} recusou assinar {document_title}',
        'document_voided': 'Documento cancelado: {document_title}',
        'expiration_notice': 'Prazo de assinatura encerrado: {document_title}',
    }

    def __init__(self, from_email: str = None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def _subject(self, template_id: str, variables: Dict) -> str:
        if template_id not in self.SUBJECTS:
            raise ValueError(f'Unknown email template: {template_id}')
        return self.SUBJECTS[template_id].format_map(defaultdict(str, variables))

    def send(self, template_id: str, recipient: str, variables: Dict) -> None:
        subject = self._subject(template_id, variables)
        body = render_to_string(f'emails/{template_id}.txt', variables)
        send_mail(subject, body, self.from_email, [recipient], fail_silently=False)
        logger.info(f'Email {template_id} sent to {recipient}')
