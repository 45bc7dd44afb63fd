from enumber_checker.classifier import (
    UNKNOWN_NAME,
    VeganVerdict,
    classification_to_dict,
    classify,
)
from enumber_checker.codes import ECode
from enumber_checker.reference_table import ReferenceEntry, ReferenceTable


def make_table():
    return ReferenceTable([
        ReferenceEntry(ECode("E100"), "Curcumin", True),
        ReferenceEntry(ECode("E120"), "Cochineal", False),
        ReferenceEntry(ECode("E200"), "Sorbic acid", True),
    ])


def test_one_non_vegan_code_flips_verdict():
    res = classify([ECode("E100"), ECode("E120")], make_table())
    assert res.verdict is VeganVerdict.NOT_ALL_VEGAN
    assert not res.is_vegan
    assert [str(a.code) for a in res.non_vegan] == ["E120"]


def test_all_known_vegan_codes():
    res = classify([ECode("E100"), ECode("E200")], make_table())
    assert res.verdict is VeganVerdict.ALL_VEGAN
    assert res.is_vegan
    assert [a.name for a in res.annotations] == ["Curcumin", "Sorbic acid"]


def test_unknown_code_is_not_vegan():
    res = classify([ECode("E100"), ECode("E199")], make_table())
    assert res.verdict is VeganVerdict.NOT_ALL_VEGAN
    unknown = res.annotations[1]
    assert unknown.name == UNKNOWN_NAME
    assert unknown.known is False
    assert unknown.vegan is False


def test_empty_set_is_unresolved():
    res = classify([], make_table())
    assert res.verdict is VeganVerdict.UNRESOLVED
    assert res.annotations == ()
    assert not res.is_vegan


def test_adding_a_non_vegan_code_always_flips():
    table = make_table()
    base = [ECode("E100"), ECode("E200")]
    assert classify(base, table).is_vegan
    for extra in ("E120", "E199"):
        assert classify(base + [ECode(extra)], table).verdict is VeganVerdict.NOT_ALL_VEGAN


def test_flipping_one_table_entry_flips_verdict():
    entries = [
        ReferenceEntry(ECode("E100"), "Curcumin", True),
        ReferenceEntry(ECode("E200"), "Sorbic acid", True),
        ReferenceEntry(ECode("E330"), "Citric acid", True),
    ]
    codes = [e.code for e in entries]
    assert classify(codes, ReferenceTable(entries)).verdict is VeganVerdict.ALL_VEGAN

    for flipped in entries:
        table = ReferenceTable(
            ReferenceEntry(e.code, e.name, e.vegan and e is not flipped) for e in entries
        )
        res = classify(codes, table)
        assert res.verdict is VeganVerdict.NOT_ALL_VEGAN
        assert [a.code for a in res.non_vegan] == [flipped.code]


def test_duplicates_are_annotated_once():
    res = classify([ECode("E100"), ECode("E100"), ECode("E200")], make_table())
    assert [str(a.code) for a in res.annotations] == ["E100", "E200"]


def test_classification_to_dict():
    out = classification_to_dict(classify([ECode("E120")], make_table()))
    assert out == {
        "verdict": "not_all_vegan",
        "is_vegan": False,
        "codes": [{"code": "E120", "name": "Cochineal", "vegan": False, "known": True}],
    }
