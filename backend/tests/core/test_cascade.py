"""Cascade Reconciliation — which memberships an acceptance invalidates."""

from housing_draw.core.cascade import became_accepted, plan_cascade
from housing_draw.core.domain_types import MembershipStatus

from tests.core.snapshot_builders import membership


ACCEPTED = MembershipStatus.ACCEPTED
INVITED = MembershipStatus.INVITED
REQUESTED = MembershipStatus.REQUESTED


def test_became_accepted_on_create_and_transition_only():
    accepted = membership(status=ACCEPTED)
    invited = membership(status=INVITED)
    assert became_accepted(None, accepted)
    assert became_accepted(invited, invited.with_changes({"status": ACCEPTED}))
    assert not became_accepted(accepted, accepted)
    assert not became_accepted(None, invited)
    assert not became_accepted(accepted, None)


def test_acceptance_lists_other_pending_memberships():
    trigger = membership(status=INVITED)
    requested = membership(trigger.user_id, status=REQUESTED)
    invited = membership(trigger.user_id, status=INVITED)
    after = trigger.with_changes({"status": ACCEPTED})

    cascade = plan_cascade(trigger, after, [trigger, requested, invited])

    assert cascade == (requested.id, invited.id)


def test_acceptance_never_lists_the_trigger():
    trigger = membership(status=REQUESTED)
    after = trigger.with_changes({"status": ACCEPTED})
    assert plan_cascade(trigger, after, [trigger]) == ()


def test_create_accepted_cascades_existing_invites():
    invite = membership(status=INVITED)
    new = membership(invite.user_id, status=ACCEPTED, persisted=False)
    assert plan_cascade(None, new, [invite]) == (invite.id,)


def test_pending_write_never_cascades():
    other = membership(status=INVITED)
    new = membership(other.user_id, status=REQUESTED, persisted=False)
    assert plan_cascade(None, new, [other]) == ()


def test_locking_an_accepted_membership_does_not_cascade():
    accepted = membership(status=ACCEPTED)
    stray = membership(accepted.user_id, status=INVITED)
    assert plan_cascade(accepted, accepted.with_changes({"locked": True}), [stray]) == ()
