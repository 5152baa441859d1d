"""Unit tests for the match suggestion lifecycle

Tests cover:
- Idempotent proposal per (inbox, transaction) pair
- Confirm / decline / unmatch with the matching inbox transitions
- Rejected transitions roll back both rows
- Several suggestions for one inbox item (one confirmed at most)
- Dismissed pair detection
- Inbox statistics
"""

from uuid import uuid4

import pytest

from domain.inbox.inbox_status import InboxStatus
from domain.matching.suggestion_status import SuggestionStatus, MatchType, InvariantViolation
from matching.lifecycle import MatchSuggestionService, InboxItemNotFoundError, SuggestionNotFoundError
from matching.ports import MatchScores
from models import MatchSuggestion


SCORES = MatchScores(amount=1.0, currency=1.0, date=0.9, embedding=0.8, perfect_financial=True)


@pytest.fixture
def service(db_session):
    return MatchSuggestionService(db_session)


@pytest.fixture
def pair(make_inbox, make_transaction):
    inbox = make_inbox(status=InboxStatus.SUGGESTED_MATCH)
    transaction = make_transaction()
    return inbox, transaction


@pytest.fixture
def suggestion(service, tenant_id, pair):
    inbox, transaction = pair
    return service.propose_suggestion(
        tenant_id, inbox.id, transaction.id, SCORES, 0.91, MatchType.HIGH_CONFIDENCE
    )


class TestProposeSuggestion:

    def test_creates_pending_suggestion(self, suggestion, pair):
        inbox, transaction = pair
        assert suggestion.status == SuggestionStatus.PENDING.value
        assert suggestion.match_type == MatchType.HIGH_CONFIDENCE.value
        assert suggestion.inbox_id == inbox.id
        assert suggestion.transaction_id == transaction.id
        assert suggestion.confidence_score == 0.91
        assert suggestion.amount_score == 1.0

    def test_repeated_proposal_updates_same_row(self, db_session, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        again = service.propose_suggestion(
            tenant_id, inbox.id, transaction.id, SCORES, 0.65, MatchType.SUGGESTED
        )

        assert again.id == suggestion.id
        assert db_session.query(MatchSuggestion).count() == 1
        assert again.confidence_score == 0.65
        assert again.match_type == MatchType.SUGGESTED.value

    def test_reproposal_keeps_decision(self, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        service.decline(tenant_id, suggestion.id, inbox.id, user_id=None)

        again = service.propose_suggestion(
            tenant_id, inbox.id, transaction.id, SCORES, 0.99, MatchType.AUTO_MATCHED
        )

        assert again.status == SuggestionStatus.DECLINED.value
        assert again.match_type == MatchType.HIGH_CONFIDENCE.value
        assert again.confidence_score == 0.99

    def test_unknown_scores_stored_as_null(self, service, tenant_id, make_inbox, make_transaction):
        inbox = make_inbox(amount=None, on=None)
        transaction = make_transaction()
        scores = MatchScores(
            amount=0.0, currency=1.0, date=0.5, embedding=0.7,
            amount_comparable=False, date_comparable=False,
        )

        suggestion = service.propose_suggestion(
            tenant_id, inbox.id, transaction.id, scores, 0.45, MatchType.SUGGESTED
        )

        assert suggestion.amount_score is None
        assert suggestion.date_score is None
        assert suggestion.currency_score == 1.0


class TestRecordMatch:

    def test_suggested_moves_inbox_to_suggested_match(self, service, tenant_id, make_inbox, make_transaction):
        inbox = make_inbox()
        transaction = make_transaction()

        service.record_match(tenant_id, inbox.id, transaction.id, SCORES, 0.8, MatchType.HIGH_CONFIDENCE)

        assert inbox.status == InboxStatus.SUGGESTED_MATCH.value
        assert inbox.transaction_id is None

    def test_auto_match_confirms_and_links(self, service, tenant_id, make_inbox, make_transaction):
        inbox = make_inbox()
        transaction = make_transaction()

        suggestion = service.record_match(
            tenant_id, inbox.id, transaction.id, SCORES, 0.97, MatchType.AUTO_MATCHED
        )

        assert suggestion.status == SuggestionStatus.CONFIRMED.value
        assert suggestion.user_id is None
        assert suggestion.user_action_at is not None
        assert inbox.status == InboxStatus.DONE.value
        assert inbox.transaction_id == transaction.id

    def test_unknown_inbox(self, service, tenant_id, make_transaction):
        with pytest.raises(InboxItemNotFoundError):
            service.record_match(tenant_id, uuid4(), make_transaction().id, SCORES, 0.8, MatchType.SUGGESTED)

    def test_mark_no_match(self, service, tenant_id, make_inbox):
        inbox = make_inbox()
        service.mark_no_match(tenant_id, inbox.id)
        assert inbox.status == InboxStatus.NO_MATCH.value


class TestConfirm:

    def test_confirm_links_inbox(self, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        user_id = uuid4()

        confirmed = service.confirm(tenant_id, suggestion.id, inbox.id, transaction.id, user_id)

        assert confirmed.status == SuggestionStatus.CONFIRMED.value
        assert confirmed.user_id == user_id
        assert confirmed.user_action_at is not None
        assert inbox.status == InboxStatus.DONE.value
        assert inbox.transaction_id == transaction.id

    def test_confirm_twice_rejected(self, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        service.confirm(tenant_id, suggestion.id, inbox.id, transaction.id, None)

        with pytest.raises(InvariantViolation):
            service.confirm(tenant_id, suggestion.id, inbox.id, transaction.id, None)

    def test_confirm_declined_rejected_and_nothing_changes(self, db_session, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        service.decline(tenant_id, suggestion.id, inbox.id, None)

        with pytest.raises(InvariantViolation):
            service.confirm(tenant_id, suggestion.id, inbox.id, transaction.id, None)

        db_session.expire_all()
        assert db_session.get(MatchSuggestion, suggestion.id).status == SuggestionStatus.DECLINED.value
        assert inbox.status == InboxStatus.PENDING.value
        assert inbox.transaction_id is None

    def test_confirm_with_wrong_transaction(self, db_session, service, tenant_id, pair, suggestion, make_transaction):
        inbox, _ = pair
        other = make_transaction(amount=None)

        with pytest.raises(InvariantViolation):
            service.confirm(tenant_id, suggestion.id, inbox.id, other.id, None)

        db_session.expire_all()
        assert suggestion.status == SuggestionStatus.PENDING.value
        assert inbox.status == InboxStatus.SUGGESTED_MATCH.value

    def test_confirm_with_wrong_inbox(self, service, tenant_id, pair, suggestion, make_inbox):
        _, transaction = pair
        other_inbox = make_inbox()

        with pytest.raises(InvariantViolation):
            service.confirm(tenant_id, suggestion.id, other_inbox.id, transaction.id, None)

    def test_confirm_unknown_suggestion(self, service, tenant_id, pair):
        inbox, transaction = pair
        with pytest.raises(SuggestionNotFoundError):
            service.confirm(tenant_id, uuid4(), inbox.id, transaction.id, None)

    def test_confirm_other_tenant(self, service, other_tenant_id, pair, suggestion):
        inbox, transaction = pair
        with pytest.raises(InboxItemNotFoundError):
            service.confirm(other_tenant_id, suggestion.id, inbox.id, transaction.id, None)

    def test_confirm_deleted_inbox_rejected(self, db_session, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        inbox.status = InboxStatus.DELETED.value
        db_session.commit()

        with pytest.raises(InvariantViolation):
            service.confirm(tenant_id, suggestion.id, inbox.id, transaction.id, None)

        db_session.expire_all()
        assert suggestion.status == SuggestionStatus.PENDING.value


class TestDecline:

    def test_decline_returns_inbox_to_pending(self, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        user_id = uuid4()

        declined = service.decline(tenant_id, suggestion.id, inbox.id, user_id)

        assert declined.status == SuggestionStatus.DECLINED.value
        assert declined.user_id == user_id
        assert inbox.status == InboxStatus.PENDING.value
        assert service.was_previously_dismissed(tenant_id, inbox.id, transaction.id) is True

    def test_decline_confirmed_rejected(self, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        service.confirm(tenant_id, suggestion.id, inbox.id, transaction.id, None)

        with pytest.raises(InvariantViolation):
            service.decline(tenant_id, suggestion.id, inbox.id, None)

        assert inbox.status == InboxStatus.DONE.value


class TestSeveralSuggestionsPerInbox:
    """One inbox item with pending suggestions for two transactions"""

    @pytest.fixture
    def siblings(self, service, tenant_id, make_inbox, make_transaction):
        inbox = make_inbox(status=InboxStatus.SUGGESTED_MATCH)
        first_tx = make_transaction()
        second_tx = make_transaction(name="ACME CLOUD EU")
        first = service.propose_suggestion(
            tenant_id, inbox.id, first_tx.id, SCORES, 0.91, MatchType.HIGH_CONFIDENCE
        )
        second = service.propose_suggestion(
            tenant_id, inbox.id, second_tx.id, SCORES, 0.84, MatchType.HIGH_CONFIDENCE
        )
        return inbox, (first, first_tx), (second, second_tx)

    def test_declining_sibling_after_confirm_keeps_item_done(self, db_session, service, tenant_id, siblings):
        inbox, (first, first_tx), (second, _) = siblings
        service.confirm(tenant_id, first.id, inbox.id, first_tx.id, None)

        declined = service.decline(tenant_id, second.id, inbox.id, None)

        db_session.expire_all()
        assert declined.status == SuggestionStatus.DECLINED.value
        assert db_session.get(MatchSuggestion, first.id).status == SuggestionStatus.CONFIRMED.value
        assert inbox.status == InboxStatus.DONE.value
        assert inbox.transaction_id == first_tx.id

    def test_second_confirm_rejected_and_link_kept(self, db_session, service, tenant_id, siblings):
        inbox, (first, first_tx), (second, second_tx) = siblings
        service.confirm(tenant_id, first.id, inbox.id, first_tx.id, None)

        with pytest.raises(InvariantViolation):
            service.confirm(tenant_id, second.id, inbox.id, second_tx.id, None)

        db_session.expire_all()
        assert db_session.get(MatchSuggestion, second.id).status == SuggestionStatus.PENDING.value
        assert inbox.status == InboxStatus.DONE.value
        assert inbox.transaction_id == first_tx.id

    def test_declining_one_of_two_pending_keeps_suggested_match(self, service, tenant_id, siblings):
        inbox, (first, _), (second, _) = siblings

        service.decline(tenant_id, first.id, inbox.id, None)
        assert inbox.status == InboxStatus.SUGGESTED_MATCH.value
        assert service.has_pending_suggestion(tenant_id, inbox.id) is True

        service.decline(tenant_id, second.id, inbox.id, None)
        assert inbox.status == InboxStatus.PENDING.value
        assert service.has_pending_suggestion(tenant_id, inbox.id) is False

    def test_record_match_on_linked_item_rejected(self, db_session, service, tenant_id, siblings, make_transaction):
        inbox, (first, first_tx), _ = siblings
        service.confirm(tenant_id, first.id, inbox.id, first_tx.id, None)
        third_tx = make_transaction()

        with pytest.raises(InvariantViolation):
            service.record_match(tenant_id, inbox.id, third_tx.id, SCORES, 0.97, MatchType.AUTO_MATCHED)

        db_session.expire_all()
        assert inbox.transaction_id == first_tx.id
        assert db_session.query(MatchSuggestion).count() == 2


class TestMarkUnmatched:

    def test_unmatch_confirmed(self, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        service.confirm(tenant_id, suggestion.id, inbox.id, transaction.id, None)

        unmatched = service.mark_unmatched(tenant_id, suggestion.id, inbox.id)

        assert unmatched.status == SuggestionStatus.UNMATCHED.value
        assert inbox.status == InboxStatus.PENDING.value
        assert inbox.transaction_id is None
        assert service.was_previously_dismissed(tenant_id, inbox.id, transaction.id) is True

    def test_unmatch_pending_rejected(self, service, tenant_id, pair, suggestion):
        inbox, _ = pair
        with pytest.raises(InvariantViolation):
            service.mark_unmatched(tenant_id, suggestion.id, inbox.id)


class TestDismissed:

    def test_pending_is_not_dismissed(self, service, tenant_id, pair, suggestion):
        inbox, transaction = pair
        assert service.was_previously_dismissed(tenant_id, inbox.id, transaction.id) is False

    def test_other_pair_not_dismissed(self, service, tenant_id, pair, suggestion, make_transaction):
        inbox, _ = pair
        service.decline(tenant_id, suggestion.id, inbox.id, None)
        assert service.was_previously_dismissed(tenant_id, inbox.id, make_transaction().id) is False


class TestInboxStats:

    def test_counts_per_status(self, service, tenant_id, make_inbox):
        make_inbox(status=InboxStatus.NEW)
        make_inbox(status=InboxStatus.PENDING)
        make_inbox(status=InboxStatus.PENDING)
        make_inbox(status=InboxStatus.SUGGESTED_MATCH)
        make_inbox(status=InboxStatus.DONE)
        make_inbox(status=InboxStatus.ARCHIVED)
        make_inbox(status=InboxStatus.DELETED)

        stats = service.get_inbox_stats(tenant_id)

        assert stats == {
            "new_items": 1,
            "analyzing_items": 0,
            "pending_items": 2,
            "suggested_matches": 1,
            "no_match_items": 0,
            "done_items": 1,
            "total_items": 6,
        }

    def test_other_tenant_not_counted(self, service, other_tenant_id, make_inbox):
        make_inbox()
        assert service.get_inbox_stats(other_tenant_id)["total_items"] == 0
