from src.phrase_engine.validation import validate_field_values


def _age_field(**validation):
    return {"fieldKey": "age", "fieldType": "number", "label": "Age", "validation": validation}


def test_numeric_bounds():
    fields = [_age_field(required=True, min=18, max=65)]
    assert validate_field_values(fields, {"age": 10}) == {"age": "Age must be at least 18"}
    assert validate_field_values(fields, {"age": 70}) == {"age": "Age must be at most 65"}
    assert validate_field_values(fields, {"age": 30}) == {}


def test_required_field():
    fields = [_age_field(required=True)]
    assert validate_field_values(fields, {}) == {"age": "Age is required"}
    assert validate_field_values(fields, {"age": ""}) == {"age": "Age is required"}


def test_non_numeric_value_in_number_field():
    fields = [_age_field(min=18)]
    assert validate_field_values(fields, {"age": "old"}) == {"age": "Age must be a number"}


def test_pattern_uses_custom_message():
    fields = [
        {"fieldKey": "mrn", "label": "MRN", "validation": {"pattern": r"^\d{6}$", "message": "MRN must be 6 digits"}},
        {"fieldKey": "bed", "label": "Bed", "validation": {"pattern": r"^\d+[A-Z]$"}},
    ]
    errors = validate_field_values(fields, {"mrn": "12ab", "bed": "twelve"})
    assert errors == {"mrn": "MRN must be 6 digits", "bed": "Bed has invalid format"}


def test_invalid_pattern_is_skipped():
    fields = [{"fieldKey": "x", "validation": {"pattern": "("}}]
    assert validate_field_values(fields, {"x": "anything"}) == {}


def test_hidden_fields_are_exempt():
    fields = [{
        "fieldKey": "o2_flow",
        "label": "O2 flow",
        "validation": {"required": True},
        "conditionalLogic": {"if": {"field": "on_o2", "operator": "equals", "value": "no"}, "then": "hide"},
    }]
    assert validate_field_values(fields, {"on_o2": "no"}) == {}
    assert validate_field_values(fields, {"on_o2": "yes"}) == {"o2_flow": "O2 flow is required"}


def test_fields_without_rules_are_never_reported():
    assert validate_field_values([{"fieldKey": "note"}], {}) == {}


def test_numeric_defaults_and_option_values_still_validate():
    fields = [
        {"fieldKey": "dose", "fieldType": "number", "label": "Dose", "defaultValue": 5,
         "validation": {"required": True}},
        {"fieldKey": "rate", "fieldType": "dropdown", "label": "Rate",
         "options": [{"value": 15, "label": 15}, {"value": 30.0, "label": "30 mL/h"}],
         "validation": {"required": True}},
    ]
    assert validate_field_values(fields, {}) == {"dose": "Dose is required", "rate": "Rate is required"}
