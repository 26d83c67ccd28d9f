import pytest
from medcompat.schemas.medicine import CatalogMedicine, DrugClass
from medcompat.services.catalog import MedicineCatalog, default_catalog, search_medicines, suggest_alternatives


@pytest.mark.parametrize("text, expected", [
    ("Metformin 500mg BD", "Metformin"),
    ("IBUPROFEN", "Ibuprofen"),
    ("Acetylsalicylic Acid 75mg", "Aspirin"),
    ("acetaminophen syrup", "Paracetamol"),
])
def test_identify_by_name_or_generic(text, expected):
    med = default_catalog.identify(text)
    assert med is not None
    assert med.name == expected


def test_classify_falls_back_to_class_keywords():
    assert default_catalog.identify("NSAID gel") is None
    assert default_catalog.classify("NSAID gel") == "NSAID"
    assert default_catalog.classify("Enalapril 5mg") == "ACE Inhibitor"


@pytest.mark.parametrize("text", ["", "   ", "Unobtainium"])
def test_classify_unknown(text):
    assert default_catalog.classify(text) is None


def test_alternatives_same_class_then_interchangeable():
    alts = suggest_alternatives("NSAID", exclude_id="med-006")
    assert [a.name for a in alts] == ["Naproxen", "Diclofenac", "Paracetamol"]
    assert alts[0].reason == "Longer-acting NSAID"


def test_alternatives_class_match_is_case_insensitive():
    assert [a.name for a in suggest_alternatives("ace inhibitor", "med-004")] == ["Ramipril", "Losartan"]


def test_alternatives_never_include_excluded_medicine():
    for med in default_catalog.medicines:
        names = [a.name for a in suggest_alternatives(med.drug_class, med.id)]
        assert med.name not in names


def test_alternatives_without_same_class():
    alts = default_catalog.suggest_alternatives("NSAID", "med-006", include_same_class=False)
    assert [a.name for a in alts] == ["Paracetamol"]


@pytest.mark.parametrize("drug_class", [None, "", "Antifungal"])
def test_alternatives_unknown_class(drug_class):
    assert suggest_alternatives(drug_class) == []


def test_alternative_reason_defaults_to_class():
    catalog = MedicineCatalog(
        medicines=[
            CatalogMedicine(id="a", name="Alpha", generic_name="Alpha", drug_class="Test", strength="1mg"),
            CatalogMedicine(id="b", name="Beta", generic_name="Beta", drug_class="Test", strength="1mg"),
        ],
        drug_classes=[DrugClass(name="Test", keywords=["alpha", "beta"])],
    )
    alts = catalog.suggest_alternatives("Test", "a")
    assert [(a.name, a.reason) for a in alts] == [("Beta", "Same drug class (Test)")]


def test_search_matches_name_generic_and_class():
    assert [m.name for m in search_medicines("statin")] == ["Atorvastatin", "Rosuvastatin"]
    assert [m.name for m in search_medicines("acetaminophen")] == ["Paracetamol"]
    assert [m.name for m in search_medicines("Penicillin")] == ["Amoxicillin"]


def test_search_empty_term_returns_whole_catalog():
    assert len(search_medicines("")) == len(default_catalog.medicines)


def test_side_effects_lookup():
    assert [s.name for s in default_catalog.side_effects_for("nsaid")][0] == "Acute kidney injury"
    assert default_catalog.side_effects_for("Unknown") == []


def test_catalog_ids_are_unique_and_classes_known():
    ids = [m.id for m in default_catalog.medicines]
    assert len(ids) == len(set(ids))
    for med in default_catalog.medicines:
        assert default_catalog.get_class(med.drug_class) is not None
