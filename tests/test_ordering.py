from apps.application.services.ordering import OrderingResolver
from apps.domain.models import Signature


def make(order, status=Signature.PENDING, email=None):
    return Signature(order=order, status=status, signer_email=email or f'{order}-{status}@example.com')


class TestOrderingResolver:
    def setup_method(self):
        self.resolver = OrderingResolver()

    def test_single_stage_everyone_may_act(self):
        signatures = [make(1), make(1), make(1)]

        assert not self.resolver.has_multiple_orders(signatures)
        assert all(self.resolver.may_act(s, signatures) for s in signatures)

    def test_later_stage_blocked_while_earlier_pending(self):
        first, second = make(1), make(2)

        assert self.resolver.has_multiple_orders([first, second])
        assert self.resolver.may_act(first, [first, second])
        assert not self.resolver.may_act(second, [first, second])

    def test_later_stage_unblocked_once_earlier_signed(self):
        first, second = make(1, Signature.SIGNED), make(2)

        assert self.resolver.may_act(second, [first, second])

    def test_declined_does_not_block(self):
        first, second = make(1, Signature.DECLINED), make(2)

        assert self.resolver.may_act(second, [first, second])

    def test_one_pending_in_parallel_stage_still_blocks(self):
        a, b, c = make(1, Signature.SIGNED), make(1), make(2)

        assert not self.resolver.may_act(c, [a, b, c])

    def test_next_stage_is_lowest_pending_order(self):
        a, b, c = make(1, Signature.SIGNED), make(2), make(3)

        assert self.resolver.next_stage([a, b, c]) == [b]

    def test_next_stage_includes_parallel_signers(self):
        a, b, c = make(1), make(1), make(2)

        assert self.resolver.next_stage([a, b, c]) == [a, b]

    def test_next_stage_empty_when_nothing_pending(self):
        signatures = [make(1, Signature.SIGNED), make(2, Signature.DECLINED)]

        assert self.resolver.next_stage(signatures) == []

    def test_first_stage_is_lowest_order(self):
        a, b, c = make(2), make(1, email='b@example.com'), make(1, email='c@example.com')

        assert self.resolver.first_stage([a, b, c]) == [b, c]

    def test_first_stage_empty(self):
        assert self.resolver.first_stage([]) == []
