"""Tests for the conversation flow controller."""

import pytest

from intake.errors import UnknownCategoryError
from intake.state.follow_up import (
    completion_message,
    generic_question,
    next_question,
    question_for,
    resolve_template,
)
from intake.state.schema_registry import ContextualQuestion, FieldSource

SAMPLE_VALUES = {
    "text": "something",
    "email": "dana@example.com",
    "phone": "(704) 555-0123",
    "zip": "28202",
    "date": "01/15/2024",
    "boolean": "no",
    "number": 2500,
    "state": "NC",
}


def full_answers(schema):
    answers = {}
    for f in schema.askable_fields():
        if f.allowed_values:
            answers[f.name] = f.allowed_values[0]
        else:
            answers[f.name] = SAMPLE_VALUES[f.type.value]
    return answers


class TestNextField:
    def test_empty_answers_ask_first_declared_field(self, catalog):
        for schema in catalog.categories.values():
            nq = next_question({}, schema.id, catalog=catalog)
            assert nq.has_next
            assert nq.field == schema.askable_fields()[0].name
            spec = schema.field(nq.field)
            assert spec.source == FieldSource.USER

    def test_all_answered_is_complete(self, catalog):
        for schema in catalog.categories.values():
            nq = next_question(full_answers(schema), schema.id, catalog=catalog)
            assert nq.has_next is False
            assert nq.field is None and nq.question is None

    def test_server_and_config_fields_never_asked(self, catalog):
        schema = catalog.require("personal_injury_law")
        answers = full_answers(schema)
        # no ip_address, main_category, city, state or sub_category in answers
        assert next_question(answers, "personal_injury_law", catalog=catalog).has_next is False

    def test_blank_string_counts_as_missing(self, catalog):
        schema = catalog.require("family_law")
        answers = full_answers(schema)
        answers["email"] = "   "
        nq = next_question(answers, "family_law", catalog=catalog)
        assert nq.field == "email"

    def test_declared_order_wins(self, catalog):
        answers = {"describe": "rear-ended on I-77"}
        nq = next_question(answers, "personal_injury_law", "car accident", catalog=catalog)
        assert nq.field == "date_of_incident"
        answers.update({"date_of_incident": "01/15/2024", "phone": "(704) 555-0123"})
        nq = next_question(answers, "personal_injury_law", "car accident", catalog=catalog)
        assert nq.field == "doctor_treatment"

    def test_deterministic(self, catalog):
        answers = {"describe": "divorce", "children_involved": "yes"}
        first = next_question(answers, "family_law", "divorce", catalog=catalog)
        second = next_question(dict(answers), "family_law", "divorce", catalog=catalog)
        assert first == second

    def test_unknown_category_is_hard_error(self, catalog):
        with pytest.raises(UnknownCategoryError):
            next_question({}, "maritime_law", catalog=catalog)


class TestQuestionText:
    def test_context_keyword_variant_and_intro(self, catalog):
        answers = {"describe": "I was rear-ended on the highway"}
        nq = next_question(answers, "personal_injury_law", "car accident", catalog=catalog)
        assert nq.question == (
            "I'm sorry to hear about your accident. I hope you're doing okay. When did the accident happen?"
        )

    def test_exact_subcategory_variant(self, catalog):
        nq = next_question({"describe": "wet floor at a store"}, "personal_injury_law", "slip and fall", catalog=catalog)
        assert nq.question == "When did you fall?"

    def test_default_variant(self, catalog):
        nq = next_question({"describe": "bitten by a neighbor's pet"}, "personal_injury_law", "dog bite", catalog=catalog)
        assert nq.question == "When did this happen?"

    def test_category_keyed_variant(self):
        template = ContextualQuestion(variants={"family_law": "Family question?"}, default="Default?")
        assert resolve_template(template, category="family_law", subcategory="divorce") == "Family question?"
        assert resolve_template(template, category="criminal_law") == "Default?"

    def test_name_prefix(self, catalog):
        schema = catalog.require("general")
        assert question_for(schema, "last_name", {"first_name": "Dana"}) == "Dana, what is your last name?"
        assert question_for(schema, "last_name", {}) == "What is your last name?"

    def test_generic_fallback(self, catalog):
        schema = catalog.require("personal_injury_law")
        assert question_for(schema, "insurance_company", {}) == "What is your insurance company?"
        assert generic_question("zip_code") == "What is your zip code?"

    def test_completion_message(self, catalog):
        schema = catalog.require("personal_injury_law")
        msg = completion_message({"first_name": "Dana"}, schema)
        assert msg.startswith("Thank you, Dana.")
        assert "Personal Injury cases" in msg
