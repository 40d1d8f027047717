from medlens.recognizer import EntityRecognizer


async def test_tags_known_entities_with_token_positions(knowledge):
    entities = EntityRecognizer(knowledge).extract_entities(
        "Patient on paracetamol, history of hypertension. Hb low."
    )

    assert [(e.text, e.type, e.normalized_form) for e in entities] == [
        ("paracetamol", "medication", "Paracetamol"),
        ("hypertension", "condition", "Hypertension"),
    ]
    assert [(e.position.start, e.position.end) for e in entities] == [(2, 3), (5, 6)]
    assert all(e.confidence == 0.8 for e in entities)


async def test_synonyms_normalize_to_entity_name(knowledge):
    entities = EntityRecognizer(knowledge).extract_entities("Took ACETAMINOPHEN; haemoglobin checked")
    assert [(e.type, e.normalized_form) for e in entities] == [
        ("medication", "Paracetamol"),
        ("lab_test", "Hemoglobin"),
    ]


async def test_unknown_text_yields_nothing(knowledge):
    assert EntityRecognizer(knowledge).extract_entities("No findings today") == []
    assert EntityRecognizer(knowledge).extract_entities("") == []
