from verdict.app.canonical.dedupe import dedupe, dedupe_key
from verdict.app.constitution.enforcer import enforce
from verdict.tests.fixtures.candidates import make_candidate


def _findings(*candidates):
    return enforce(list(candidates)).findings


def test_duplicates_collapse_to_first_occurrence():
    a = make_candidate(id="A", sourceRef="a.js:1")
    a_later = make_candidate(id="A", sourceRef="z.js:99")
    b = make_candidate(id="B")

    findings = _findings(a, b, a_later, a)

    unique = dedupe(findings)

    assert [f.id for f in unique] == ["A", "B"]
    assert unique[0].source_ref == "a.js:1"


def test_same_id_with_different_promise_is_kept():
    findings = _findings(
        make_candidate(id="A"),
        make_candidate(id="A", promise={"kind": "network", "value": "PUT /x"}),
    )

    assert len(dedupe(findings)) == 2


def test_same_id_with_different_location_is_kept():
    findings = _findings(
        make_candidate(id="A", location="#save"),
        make_candidate(id="A", location="#cancel"),
    )

    assert len(dedupe(findings)) == 2


def test_dedupe_key_ignores_promise_field_order():
    first, second = _findings(
        make_candidate(promise={"kind": "k", "value": "v"}),
        make_candidate(promise={"value": "v", "kind": "k"}),
    )

    assert dedupe_key(first) == dedupe_key(second)


def test_dedupe_is_idempotent():
    findings = _findings(
        make_candidate(id="A"),
        make_candidate(id="A"),
        make_candidate(id="B"),
    )

    once = dedupe(findings)

    assert dedupe(once) == once
