from typing import Iterable, List
from apps.domain.models import Signature


class OrderingResolver:
    """Regras de ordem de assinatura.

    Assinaturas com o mesmo `order` formam uma etapa paralela. Com mais de
    uma etapa, um signatário só pode agir quando nenhuma assinatura de ordem
    menor ainda está pendente; recusas não bloqueiam as etapas seguintes.
    """

    def has_multiple_orders(self, signatures: Iterable[Signature]) -> bool:
        return len({signature.order for signature in signatures}) > 1

    def may_act(self, signature: Signature, signatures: Iterable[Signature]) -> bool:
        signatures = list(signatures)
        if not self.has_multiple_orders(signatures):
            return True
        return not any(
            other.status == Signature.PENDING and other.order < signature.order
            for other in signatures
        )

    def next_stage(self, signatures: Iterable[Signature]) -> List[Signature]:
        pending = [s for s in signatures if s.status == Signature.PENDING]
        if not pending:
            return []
        lowest = min(s.order for s in pending)
        return [s for s in pending if s.order == lowest]

    def first_stage(self, signatures: Iterable[Signature]) -> List[Signature]:
        signatures = list(signatures)
        if not signatures:
            return []
        lowest = min(s.order for s in signatures)
        return [s for s in signatures if s.order == lowest]
