from src.phrase_engine.scanner import extract_field_keys, fill_placeholders


def test_extract_field_keys_dedupes_in_first_occurrence_order():
    keys = extract_field_keys("Hello {{name}} and {{bed}} and {{name}}")
    assert keys == ["name", "bed"]


def test_extract_field_keys_ignores_blank_and_malformed_placeholders():
    assert extract_field_keys("{{}} {{ }} {name} {{ok}}") == ["ok"]
    assert extract_field_keys("") == []


def test_fill_placeholders_reuses_values_and_blanks_unknown_keys():
    filled = fill_placeholders("{{a}}-{{b}}-{{a}}", {"a": "x"})
    assert filled == "x--x"
