import pytest


@pytest.fixture
def sample_phrase():
    return {
        "id": "phrase-1",
        "name": "Daily Note",
        "description": "Test phrase",
        "content": "Patient {{name}} is {{status}}. {{symptoms}}",
        "shortcut": ".note",
        "contextTriggers": {},
        "isActive": True,
    }


@pytest.fixture
def sample_fields():
    return [
        {"fieldKey": "name", "fieldType": "patient_data", "label": "Name", "options": {"source": "name"}, "sortOrder": 1},
        {"fieldKey": "status", "fieldType": "text", "label": "Status", "defaultValue": "stable", "sortOrder": 2},
        {"fieldKey": "symptoms", "fieldType": "checkbox", "label": "Symptoms", "sortOrder": 3},
    ]


@pytest.fixture
def sample_patient():
    return {
        "name": "Alex Smith",
        "bed": "12A",
        "createdAt": "2024-01-01T08:00:00Z",
        "labs": {"creatinine": 1.2, "potassium": "4.1"},
        "systems": {"cv": "RRR, no murmurs"},
    }
