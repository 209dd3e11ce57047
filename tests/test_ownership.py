from ownership import ANONYMOUS, Outcome, resolve_access


def _rec(owner):
    return {"id": "r1", "ownerId": owner, "parsedText": "hello"}


def test_missing_record_is_not_found():
    assert resolve_access(None, "user-1", allow_claim=True) == (Outcome.NOT_FOUND, None)


def test_owner_is_granted_unchanged():
    rec = _rec("user-1")
    outcome, got = resolve_access(rec, "user-1", allow_claim=True)
    assert outcome is Outcome.GRANTED
    assert got is rec


def test_anonymous_reads_anonymous():
    rec = _rec(ANONYMOUS)
    outcome, got = resolve_access(rec, ANONYMOUS, allow_claim=True)
    assert outcome is Outcome.GRANTED
    assert got["ownerId"] == ANONYMOUS


def test_signed_in_caller_claims_anonymous_record():
    rec = _rec(ANONYMOUS)
    outcome, got = resolve_access(rec, "user-1", allow_claim=True)
    assert outcome is Outcome.CLAIMED
    assert got["ownerId"] == "user-1"
    assert got["parsedText"] == "hello"
    # input record is left alone
    assert rec["ownerId"] == ANONYMOUS


def test_no_claim_without_permission():
    assert resolve_access(_rec(ANONYMOUS), "user-1", allow_claim=False) == (Outcome.DENIED, None)


def test_real_owner_cannot_be_claimed_from():
    assert resolve_access(_rec("user-1"), "user-2", allow_claim=True) == (Outcome.DENIED, None)


def test_anonymous_caller_denied_on_owned_record():
    assert resolve_access(_rec("user-1"), ANONYMOUS, allow_claim=True) == (Outcome.DENIED, None)


def test_allowed_flag():
    assert Outcome.GRANTED.allowed and Outcome.CLAIMED.allowed
    assert not Outcome.DENIED.allowed and not Outcome.NOT_FOUND.allowed
