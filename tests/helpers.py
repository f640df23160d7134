from apps.domain.models import OutboxMessage, Signature


def queued_emails(template=None):
    queryset = OutboxMessage.objects.filter(channel=OutboxMessage.EMAIL).order_by('id')
    if template:
        queryset = queryset.filter(template=template)
    return list(queryset.values_list('recipient', flat=True))


def signature_for(document, email):
    return Signature.objects.get(document=document, signer_email=email)
