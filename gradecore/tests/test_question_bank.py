"""
Tests for question validation, ordering and the repository-backed bank.
"""

from dataclasses import replace

import pytest

from gradecore.common.clock import FixedClock
from gradecore.common.error_handling import (
    ErrorCode,
    IndexOutOfRangeError,
    NoCorrectOptionError,
    NotFoundError,
    ValidationError,
)
from gradecore.domain.questions import (
    Difficulty,
    MemoryQuestionRepository,
    MultipleChoice,
    Option,
    Question,
    QuestionBank,
    QuestionType,
    TrueFalse,
    next_order,
    place,
    renumber,
    reorder,
    validate_question,
)

from conftest import START, make_question, make_true_false


def question_input(**overrides):
    data = {
        "quiz_id": "quiz-1",
        "text": "What is 2 + 2?",
        "options": [
            {"text": "3", "is_correct": False},
            {"text": "4", "is_correct": True},
            {"text": "5", "is_correct": False},
        ],
    }
    data.update(overrides)
    return data


class TestValidateQuestion:
    def test_defaults(self):
        question = validate_question(question_input())

        assert isinstance(question.kind, MultipleChoice)
        assert question.question_type == QuestionType.MULTIPLE_CHOICE
        assert question.points == 10
        assert question.difficulty == Difficulty.EASY
        assert question.order == 1
        assert question.correct_indices == frozenset({1})
        assert question.id

    def test_keeps_given_id_and_timestamps(self):
        question = validate_question(question_input(), question_id="q-7", now=START)

        assert question.id == "q-7"
        assert question.created_at == START
        assert question.updated_at == START

    def test_no_correct_option(self):
        data = question_input(options=[{"text": "a"}, {"text": "b"}])

        with pytest.raises(NoCorrectOptionError) as exc_info:
            validate_question(data)

        assert exc_info.value.code == ErrorCode.NO_CORRECT_OPTION
        assert exc_info.value.fields == ["options"]

    def test_no_correct_option_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            validate_question(question_input(options=[{"text": "a"}, {"text": "b"}]))

    @pytest.mark.parametrize("overrides, field", [
        ({"text": "ab"}, "text"),
        ({"points": 0}, "points"),
        ({"points": 101}, "points"),
        ({"difficulty": 6}, "difficulty"),
        ({"options": [{"text": "only", "is_correct": True}]}, "options"),
        ({"question_type": "essay"}, "question_type"),
    ])
    def test_field_rules(self, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_question(question_input(**overrides))

        assert field in exc_info.value.fields

    def test_multiple_choice_needs_option_text(self):
        data = question_input(options=[{"text": "4", "is_correct": True}, {"text": "  "}])

        with pytest.raises(ValidationError) as exc_info:
            validate_question(data)

        assert exc_info.value.fields == ["options.1.text"]

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            validate_question(question_input(author="someone"))

    def test_true_false_gets_canonical_options(self):
        data = question_input(
            question_type="true_false",
            options=[{"text": "Yes", "is_correct": False}, {"text": "No", "is_correct": True}],
        )

        question = validate_question(data)

        assert question.kind == TrueFalse(correct_is_true=False)
        assert question.options == [Option("True", False), Option("False", True)]
        assert question.correct_indices == frozenset({1})

    def test_true_false_both_correct_rejected(self):
        data = question_input(
            question_type="true_false",
            options=[{"text": "", "is_correct": True}, {"text": "", "is_correct": True}],
        )

        with pytest.raises(ValidationError) as exc_info:
            validate_question(data)

        assert not isinstance(exc_info.value, NoCorrectOptionError)

    @pytest.mark.parametrize("question_type", ["multiple_choice", "true_false"])
    def test_every_valid_question_has_a_correct_option(self, question_type):
        data = question_input(
            question_type=question_type,
            options=[{"text": "x", "is_correct": True}, {"text": "y", "is_correct": False}],
        )

        question = validate_question(data)

        assert any(option.is_correct for option in question.options)

    def test_round_trips_through_dict(self):
        question = make_true_false(answer=False)

        assert Question.from_dict(question.to_dict()) == question


class TestOrdering:
    def setup_method(self):
        self.questions = [make_question(order=i) for i in range(1, 5)]

    def test_reorder_moves_and_renumbers(self):
        result = reorder(self.questions, 0, 2)

        assert [q.id for q in result] == ["quiz-1-q2", "quiz-1-q3", "quiz-1-q1", "quiz-1-q4"]
        assert [q.order for q in result] == [1, 2, 3, 4]

    def test_reorder_backwards(self):
        result = reorder(self.questions, 3, 0)

        assert [q.id for q in result] == ["quiz-1-q4", "quiz-1-q1", "quiz-1-q2", "quiz-1-q3"]
        assert [q.order for q in result] == [1, 2, 3, 4]

    @pytest.mark.parametrize("index", [0, 1, 3])
    def test_noop_move_returns_equal_sequence(self, index):
        assert reorder(self.questions, index, index) == self.questions

    @pytest.mark.parametrize("from_index, to_index", [(-1, 0), (0, 4), (4, 0), (0, -1)])
    def test_reorder_out_of_range(self, from_index, to_index):
        with pytest.raises(IndexOutOfRangeError) as exc_info:
            reorder(self.questions, from_index, to_index)

        assert exc_info.value.details["length"] == 4

    def test_reorder_does_not_mutate_input(self):
        reorder(self.questions, 0, 3)

        assert [q.order for q in self.questions] == [1, 2, 3, 4]

    def test_renumber_closes_gaps(self):
        remaining = [self.questions[0], self.questions[2], self.questions[3]]

        assert [q.order for q in renumber(remaining)] == [1, 2, 3]

    def test_next_order(self):
        assert next_order([]) == 1
        assert next_order(self.questions) == 5

    def test_place_inserts_and_renumbers(self):
        newcomer = make_question(order=2, question_id="new")

        result = place(self.questions, newcomer)

        assert [q.id for q in result] == ["quiz-1-q1", "new", "quiz-1-q2", "quiz-1-q3", "quiz-1-q4"]
        assert [q.order for q in result] == [1, 2, 3, 4, 5]

    def test_place_replaces_same_id(self):
        moved = replace(self.questions[3], order=1)

        result = place(self.questions, moved)

        assert [q.id for q in result] == ["quiz-1-q4", "quiz-1-q1", "quiz-1-q2", "quiz-1-q3"]


@pytest.fixture
def bank(clock):
    return QuestionBank(MemoryQuestionRepository(), clock)


class TestQuestionBank:
    @pytest.mark.asyncio
    async def test_add_appends_in_order(self, bank):
        first = await bank.add("quiz-1", question_input())
        second = await bank.add("quiz-1", question_input(text="What is 3 + 3?"))

        assert (first.order, second.order) == (1, 2)
        assert [q.id for q in await bank.list_for_quiz("quiz-1")] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_add_at_explicit_position_shifts_the_rest(self, bank):
        first = await bank.add("quiz-1", question_input(text="Question one"))
        second = await bank.add("quiz-1", question_input(text="Question two"))

        inserted = await bank.add("quiz-1", question_input(text="Question zero", order=1))

        stored = await bank.list_for_quiz("quiz-1")
        assert inserted.order == 1
        assert [q.id for q in stored] == [inserted.id, first.id, second.id]
        assert [q.order for q in stored] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_add_past_the_end_appends(self, bank):
        await bank.add("quiz-1", question_input())

        appended = await bank.add("quiz-1", question_input(text="What is 9 - 1?", order=7))

        assert appended.order == 2
        assert [q.order for q in await bank.list_for_quiz("quiz-1")] == [1, 2]

    @pytest.mark.asyncio
    async def test_update_with_order_moves_question(self, bank):
        added = [await bank.add("quiz-1", question_input(text=f"Question {i}")) for i in range(3)]

        moved = await bank.update(added[0].id, question_input(text="Question 0", order=3))

        stored = await bank.list_for_quiz("quiz-1")
        assert moved.order == 3
        assert [q.id for q in stored] == [added[1].id, added[2].id, added[0].id]
        assert [q.order for q in stored] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_add_uses_quiz_from_argument(self, bank):
        question = await bank.add("quiz-9", question_input(quiz_id="other"))

        assert question.quiz_id == "quiz-9"

    @pytest.mark.asyncio
    async def test_update_keeps_identity(self, bank, clock):
        original = await bank.add("quiz-1", question_input())
        clock.advance(minutes=5)

        updated = await bank.update(original.id, question_input(text="What is 2 + 3?"))

        assert updated.id == original.id
        assert updated.order == original.order
        assert updated.created_at == original.created_at
        assert updated.updated_at == clock.now()
        assert (await bank.get(original.id)).text == "What is 2 + 3?"

    @pytest.mark.asyncio
    async def test_update_missing_question(self, bank):
        with pytest.raises(NotFoundError):
            await bank.update("missing", question_input())

    @pytest.mark.asyncio
    async def test_remove_renumbers(self, bank):
        added = [await bank.add("quiz-1", question_input(text=f"Question {i}")) for i in range(3)]

        remaining = await bank.remove(added[0].id)

        assert [q.id for q in remaining] == [added[1].id, added[2].id]
        assert [q.order for q in await bank.list_for_quiz("quiz-1")] == [1, 2]

    @pytest.mark.asyncio
    async def test_move_persists(self, bank):
        added = [await bank.add("quiz-1", question_input(text=f"Question {i}")) for i in range(3)]

        await bank.move("quiz-1", 2, 0)

        stored = await bank.list_for_quiz("quiz-1")
        assert [q.id for q in stored] == [added[2].id, added[0].id, added[1].id]
        assert [q.order for q in stored] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_delete_for_quiz(self, bank):
        await bank.add("quiz-1", question_input())
        await bank.add("quiz-1", question_input())
        await bank.add("quiz-2", question_input())

        assert await bank.delete_for_quiz("quiz-1") == 2
        assert await bank.list_for_quiz("quiz-1") == []
        assert len(await bank.list_for_quiz("quiz-2")) == 1
