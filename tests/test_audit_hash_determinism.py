from spamgate.audit.entry_builder import compute_entry_hash


def test_audit_hash_is_deterministic():
    payload = {
        "entry_id": "entry-001",
        "decision": "hold",
        "reason": "link count exceeds limit",
        "signals": {"link_count": 4, "external_score": None},
        "created_at": "2026-01-01T00:00:00+00:00",
    }

    assert compute_entry_hash(payload) == compute_entry_hash(dict(payload))


def test_audit_hash_ignores_key_order():
    a = {"decision": "allow", "reason": "no signals triggered", "entry_id": "x"}
    b = {"entry_id": "x", "reason": "no signals triggered", "decision": "allow"}

    assert compute_entry_hash(a) == compute_entry_hash(b)


def test_audit_hash_excludes_its_own_field():
    payload = {"entry_id": "x", "decision": "allow"}
    stamped = dict(payload, record_hash="anything")

    assert compute_entry_hash(payload) == compute_entry_hash(stamped)


def test_audit_hash_detects_value_change():
    payload = {"entry_id": "x", "decision": "allow"}

    assert compute_entry_hash(payload) != compute_entry_hash(dict(payload, decision="hold"))
