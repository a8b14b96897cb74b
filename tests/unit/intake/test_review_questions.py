from estate_intake.services.intake.review_questions import derive_quick_questions, has_phone_in_text


def keys(questions):
    return [q.key for q in questions]


def test_listing_gaps():
    questions = derive_quick_questions("rent", {}, "شقة للايجار", [])
    assert keys(questions) == ["price", "location_area", "contact_phone"]
    assert questions[0].type == "number"


def test_compound_counts_as_location():
    questions = derive_quick_questions("sale", {"price": "100", "compound": "Mivida"}, "", [])
    assert keys(questions) == ["contact_phone"]


def test_phone_in_text_suppresses_question():
    text = "villa for sale call 0100 123 4567"
    assert has_phone_in_text(text)
    assert derive_quick_questions("sale", {"price": "1", "location_area": "Maadi"}, text, []) == []


def test_buyer_questions():
    questions = derive_quick_questions("buyer", {"budget_max": "5000000"}, "", ["preferred_areas"])
    assert keys(questions) == ["preferred_areas", "contact_phone"]
    assert "New Cairo" in questions[0].options


def test_client_questions():
    questions = derive_quick_questions("client", {"client_type": "other"}, "", [])
    assert keys(questions) == ["phone", "client_type"]


def test_other_has_no_questions():
    assert derive_quick_questions("other", {}, "hello", []) == []


def test_at_most_three():
    questions = derive_quick_questions("buyer", {}, "", ["budget", "preferred_areas"])
    assert len(questions) == 3
