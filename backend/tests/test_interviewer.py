"""
Test suite for the Interviewer agent (interview session state machine).

This module tests:
- Start: greeting, planned -> in_progress, reuse of an existing question
- Continue: answer storage, next question insertion, conclusion
- Question orders assigned by the interviewer strictly increase
- Status never moves backwards
- Another user's session is invisible and never modified
- Continue only accepts the thread recorded at start
- Loosely shaped replies fall back to defaults instead of failing

Run tests with: pytest backend/tests/test_interviewer.py -v
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sqlmodel import select

from conftest import OTHER_USER_ID, USER_ID, fenced
from models import AgentLog, InterviewQuestion, InterviewSession, UserAnswer
from services.errors import ProviderError
from services.interviewer import Interviewer
from services.session_store import ordered_questions


def interviewer_reply(reaction_type, next_question=None, index=0, total=3, percentage=0.0, message="Hello!"):
    body = {
        "message": message,
        "reaction_type": reaction_type,
        "interview_status": {
            "current_question_index": index,
            "total_questions": total,
            "estimated_completion_percentage": percentage,
            "areas_covered": [],
            "remaining_areas": ["Technical Competency"],
        },
    }
    if next_question is not None:
        body["next_question"] = next_question
    return fenced({"interviewer_response": body})


def question_rows(db, session_id):
    db.expire_all()
    return ordered_questions(db, session_id)


# ============================================================================
# TEST CASES - Start
# ============================================================================

class TestStartInterview:

    def test_greeting_reuses_planned_question(self, db, fake_assistant, make_session):
        """
        Test Case: the greeting's next_question matches planned question #1
        exactly. The session becomes in_progress, no duplicate row is created
        and the existing id is returned.
        """
        session = make_session()
        first = question_rows(db, session.id)[0]
        fake_assistant.queue(interviewer_reply(
            "greeting",
            next_question={"question_text": first.question_text, "question_type": "behavioral"},
        ))

        result = Interviewer(db, fake_assistant).start_interview(USER_ID, session.id)

        assert result["success"] is True
        data = result["data"]
        assert data["thread_id"] == "thread_1"
        assert data["reaction_type"] == "greeting"
        assert data["interview_status"]["current_question_index"] == 0
        assert data["next_question"]["id"] == first.id
        assert data["status"] == "in_progress"
        assert data["is_complete"] is False

        assert len(question_rows(db, session.id)) == 3
        assert db.get(InterviewSession, session.id).status == "in_progress"

    def test_new_question_gets_order_one(self, db, fake_assistant, make_session):
        session = make_session()
        fake_assistant.queue(interviewer_reply(
            "greeting",
            next_question={"question_text": "What brings you here today?", "question_type": "general"},
        ))

        result = Interviewer(db, fake_assistant).start_interview(USER_ID, session.id)

        new_id = result["data"]["next_question"]["id"]
        stored = db.get(InterviewQuestion, new_id)
        assert stored.source == "interviewer"
        assert stored.question_order == 1
        assert len(question_rows(db, session.id)) == 4

    def test_first_message_bundles_context(self, db, fake_assistant, make_session):
        session = make_session()
        fake_assistant.queue(interviewer_reply("greeting"))

        Interviewer(db, fake_assistant).start_interview(USER_ID, session.id)

        assistant_id, content = fake_assistant.converse.call_args.args
        assert assistant_id == "asst_interviewer"
        assert '"is_first_interaction": true' in content
        assert "Globex" in content
        assert "Explain Python generators" in content

    def test_no_questions(self, db, fake_assistant, make_session):
        session = make_session(question_texts=())

        result = Interviewer(db, fake_assistant).start_interview(USER_ID, session.id)

        assert result == {"success": False, "error": "No interview questions found for this session"}
        fake_assistant.converse.assert_not_called()

    def test_start_on_completed_session_does_not_regress(self, db, fake_assistant, make_session):
        session = make_session(status="completed")
        fake_assistant.queue(interviewer_reply("greeting"))

        result = Interviewer(db, fake_assistant).start_interview(USER_ID, session.id)

        assert result["data"]["status"] == "completed"
        db.expire_all()
        assert db.get(InterviewSession, session.id).status == "completed"

    def test_agent_log(self, db, fake_assistant, make_session):
        session = make_session()
        fake_assistant.queue(interviewer_reply("greeting"))

        Interviewer(db, fake_assistant).start_interview(USER_ID, session.id)

        log = db.exec(select(AgentLog)).one()
        assert log.agent_type == "interviewer"
        assert log.input == {"start_interview": True}
        assert log.output == {"success": True, "message_type": "greeting"}

    def test_unparseable_reply_keeps_status(self, db, fake_assistant, make_session):
        session = make_session()
        fake_assistant.queue("Let's begin! What is your name?")

        result = Interviewer(db, fake_assistant).start_interview(USER_ID, session.id)

        assert result["success"] is False
        db.expire_all()
        assert db.get(InterviewSession, session.id).status == "planned"
        assert db.exec(select(AgentLog)).all() == []


# ============================================================================
# TEST CASES - Continue
# ============================================================================

class TestContinueInterview:

    def test_conclusion_completes_session(self, db, fake_assistant, make_session):
        """
        Test Case: a conclusion with no next_question marks the session
        completed and adds no question.
        """
        session = make_session(status="in_progress")
        current = question_rows(db, session.id)[2]
        fake_assistant.queue(interviewer_reply("conclusion", index=3, percentage=100, message="Thanks!"))

        result = Interviewer(db, fake_assistant).continue_interview(
            USER_ID, session.id, "thread_1", "I handled it calmly.", current_question_id=current.id
        )

        assert result["success"] is True
        assert result["data"]["is_complete"] is True
        assert result["data"]["status"] == "completed"
        assert result["data"]["next_question"] is None
        assert len(question_rows(db, session.id)) == 3
        assert db.get(InterviewSession, session.id).status == "completed"

    def test_answer_without_question_id_not_stored(self, db, fake_assistant, make_session):
        """
        Test Case: with no current question id the answer is not stored, but
        the conversation still proceeds and a reply comes back.
        """
        session = make_session(status="in_progress")
        fake_assistant.queue(interviewer_reply("acknowledgment", message="Got it."))

        result = Interviewer(db, fake_assistant).continue_interview(
            USER_ID, session.id, "thread_1", "Some answer", current_question_id=None
        )

        assert result["success"] is True
        assert result["data"]["message"] == "Got it."
        assert db.exec(select(UserAnswer)).all() == []
        fake_assistant.converse.assert_called_once_with("asst_interviewer", "Some answer", thread_id="thread_1")

    def test_answer_stored_and_next_question_inserted(self, db, fake_assistant, make_session):
        session = make_session(status="in_progress")
        current = question_rows(db, session.id)[0]
        fake_assistant.queue(interviewer_reply(
            "transition_to_next",
            next_question={"question_text": "How do you test async code?", "question_type": "technical"},
            index=1,
            percentage=40,
        ))

        result = Interviewer(db, fake_assistant).continue_interview(
            USER_ID, session.id, "thread_1", "I am a backend engineer.", current_question_id=current.id
        )

        answers = db.exec(select(UserAnswer)).all()
        assert len(answers) == 1
        assert answers[0].question_id == current.id
        assert answers[0].answer_text == "I am a backend engineer."

        stored = db.get(InterviewQuestion, result["data"]["next_question"]["id"])
        assert stored.question_order == 2
        assert stored.source == "interviewer"

        log = db.exec(select(AgentLog)).one()
        assert log.input == {"answer_length": len("I am a backend engineer."), "current_question_index": 1}
        assert log.output["completion_percentage"] == 40

    def test_message_only_turn(self, db, fake_assistant, make_session):
        session = make_session(status="in_progress")
        fake_assistant.queue(interviewer_reply("clarification", message="Could you say more?"))

        result = Interviewer(db, fake_assistant).continue_interview(USER_ID, session.id, "thread_1", "Hmm")

        assert result["success"] is True
        assert result["data"]["next_question"] is None
        assert result["data"]["is_complete"] is False
        assert result["data"]["status"] == "in_progress"

    def test_answer_kept_when_provider_fails(self, db, fake_assistant, make_session):
        session = make_session(status="in_progress")
        current = question_rows(db, session.id)[0]
        fake_assistant.converse.side_effect = ProviderError("Assistant processing failed")

        result = Interviewer(db, fake_assistant).continue_interview(
            USER_ID, session.id, "thread_1", "My answer", current_question_id=current.id
        )

        assert result == {"success": False, "error": "Assistant processing failed"}
        assert len(db.exec(select(UserAnswer)).all()) == 1

    def test_question_from_other_session_rejected(self, db, fake_assistant, make_session):
        session = make_session(status="in_progress")
        other = make_session(question_texts=("Unrelated question",))
        foreign = question_rows(db, other.id)[0]

        result = Interviewer(db, fake_assistant).continue_interview(
            USER_ID, session.id, "thread_1", "Answer", current_question_id=foreign.id
        )

        assert result == {"success": False, "error": "Interview question not found for this session"}
        assert db.exec(select(UserAnswer)).all() == []
        fake_assistant.converse.assert_not_called()

    def test_completed_session_rejects_turns(self, db, fake_assistant, make_session):
        session = make_session(status="completed")
        current = question_rows(db, session.id)[0]

        result = Interviewer(db, fake_assistant).continue_interview(
            USER_ID, session.id, "thread_1", "Late answer", current_question_id=current.id
        )

        assert result["success"] is False
        assert db.exec(select(UserAnswer)).all() == []
        assert db.get(InterviewSession, session.id).status == "completed"


# ============================================================================
# TEST CASES - Ordering, monotonic status and ownership
# ============================================================================

class TestInterviewInvariants:

    def test_interviewer_orders_strictly_increase(self, db, fake_assistant, make_session):
        session = make_session()
        interviewer = Interviewer(db, fake_assistant)
        fake_assistant.queue(
            interviewer_reply("greeting", next_question={"question_text": "Q-A"}, index=0),
            interviewer_reply("transition_to_next", next_question={"question_text": "Q-B"}, index=1),
            # stale index from the assistant must not reuse an order
            interviewer_reply("follow_up", next_question={"question_text": "Q-C"}, index=0),
        )

        interviewer.start_interview(USER_ID, session.id)
        interviewer.continue_interview(USER_ID, session.id, "thread_1", "a1")
        interviewer.continue_interview(USER_ID, session.id, "thread_1", "a2")

        orders = [
            q.question_order for q in question_rows(db, session.id) if q.source == "interviewer"
        ]
        assert orders == [1, 2, 3]

    def test_repeated_question_text_reuses_row(self, db, fake_assistant, make_session):
        session = make_session()
        interviewer = Interviewer(db, fake_assistant)
        repeated = {"question_text": "Why do you want this role?"}
        fake_assistant.queue(
            interviewer_reply("greeting", next_question=repeated, index=0),
            interviewer_reply("follow_up", next_question=repeated, index=1),
        )

        first = interviewer.start_interview(USER_ID, session.id)
        second = interviewer.continue_interview(USER_ID, session.id, "thread_1", "Because.")

        assert first["data"]["next_question"]["id"] == second["data"]["next_question"]["id"]
        texts = [q.question_text for q in question_rows(db, session.id)]
        assert texts.count("Why do you want this role?") == 1

    def test_status_sequence_is_monotonic(self, db, fake_assistant, make_session):
        session = make_session()
        interviewer = Interviewer(db, fake_assistant)
        fake_assistant.queue(
            interviewer_reply("greeting"),
            interviewer_reply("conclusion"),
            interviewer_reply("greeting"),
        )

        seen = [db.get(InterviewSession, session.id).status]
        interviewer.start_interview(USER_ID, session.id)
        db.expire_all()
        seen.append(db.get(InterviewSession, session.id).status)
        interviewer.continue_interview(USER_ID, session.id, "thread_1", "done")
        db.expire_all()
        seen.append(db.get(InterviewSession, session.id).status)
        interviewer.start_interview(USER_ID, session.id)
        db.expire_all()
        seen.append(db.get(InterviewSession, session.id).status)

        assert seen == ["planned", "in_progress", "completed", "completed"]

    def test_other_user_cannot_start_or_continue(self, db, fake_assistant, make_session):
        session = make_session(user_id=OTHER_USER_ID)
        current = question_rows(db, session.id)[0]
        interviewer = Interviewer(db, fake_assistant)

        started = interviewer.start_interview(USER_ID, session.id)
        continued = interviewer.continue_interview(
            USER_ID, session.id, "thread_1", "sneaky", current_question_id=current.id
        )

        for result in (started, continued):
            assert result == {"success": False, "error": "Interview session not found or access denied"}
        fake_assistant.converse.assert_not_called()
        assert db.exec(select(UserAnswer)).all() == []
        db.expire_all()
        assert db.get(InterviewSession, session.id).status == "planned"

    @pytest.mark.parametrize("user_id", [None, ""])
    def test_unauthenticated(self, db, fake_assistant, make_session, user_id):
        session = make_session()

        result = Interviewer(db, fake_assistant).start_interview(user_id, session.id)

        assert result == {"success": False, "error": "User not authenticated"}


# ============================================================================
# TEST CASES - Thread binding
# ============================================================================

class TestThreadBinding:

    def test_start_records_thread(self, db, fake_assistant, make_session):
        session = make_session()
        fake_assistant.queue(interviewer_reply("greeting"))

        Interviewer(db, fake_assistant).start_interview(USER_ID, session.id)

        db.expire_all()
        assert db.get(InterviewSession, session.id).thread_id == "thread_1"

    def test_foreign_thread_rejected_before_any_write(self, db, fake_assistant, make_session):
        session = make_session(status="in_progress")
        session.thread_id = "thread_1"
        db.add(session)
        db.commit()
        current = question_rows(db, session.id)[0]

        result = Interviewer(db, fake_assistant).continue_interview(
            USER_ID, session.id, "thread_from_elsewhere", "Answer", current_question_id=current.id
        )

        assert result == {"success": False, "error": "Interview thread does not belong to this session"}
        assert db.exec(select(UserAnswer)).all() == []
        fake_assistant.converse.assert_not_called()

    def test_bound_thread_accepted(self, db, fake_assistant, make_session):
        session = make_session(status="in_progress")
        session.thread_id = "thread_1"
        db.add(session)
        db.commit()
        fake_assistant.queue(interviewer_reply("acknowledgment"))

        result = Interviewer(db, fake_assistant).continue_interview(USER_ID, session.id, "thread_1", "Answer")

        assert result["success"] is True


# ============================================================================
# TEST CASES - Loosely shaped replies
# ============================================================================

class TestLooseInterviewerReplies:

    def test_null_status_fields_fall_back_to_defaults(self, db, fake_assistant, make_session):
        """
        Test Case: nulls and odd types inside interview_status do not abort
        the turn. The answer is stored and the next question is inserted.
        """
        session = make_session(status="in_progress")
        current = question_rows(db, session.id)[0]
        fake_assistant.queue(fenced({
            "interviewer_response": {
                "message": "Thanks.",
                "reaction_type": "transition_to_next",
                "next_question": {
                    "question_text": "Which databases have you tuned?",
                    "related_skill": ["PostgreSQL", "Redis"],
                    "focus_area": None,
                },
                "interview_status": {
                    "current_question_index": "1",
                    "total_questions": None,
                    "estimated_completion_percentage": "about half",
                    "areas_covered": None,
                    "remaining_areas": "Culture",
                },
            }
        }))

        result = Interviewer(db, fake_assistant).continue_interview(
            USER_ID, session.id, "thread_1", "Answer", current_question_id=current.id
        )

        assert result["success"] is True
        status = result["data"]["interview_status"]
        assert status["current_question_index"] == 1
        assert status["total_questions"] == 0
        assert status["estimated_completion_percentage"] == 0
        assert status["areas_covered"] == []
        assert status["remaining_areas"] == ["Culture"]
        assert len(db.exec(select(UserAnswer)).all()) == 1

        stored = db.get(InterviewQuestion, result["data"]["next_question"]["id"])
        assert stored.related_skill == "PostgreSQL, Redis"
        assert stored.focus_area is None
        assert stored.question_order == 2

    def test_null_status_object(self, db, fake_assistant, make_session):
        session = make_session(status="in_progress")
        fake_assistant.queue(fenced({
            "interviewer_response": {"message": None, "reaction_type": None, "interview_status": None}
        }))

        result = Interviewer(db, fake_assistant).continue_interview(USER_ID, session.id, "thread_1", "Answer")

        assert result["success"] is True
        assert result["data"]["message"] == ""
        assert result["data"]["reaction_type"] == "acknowledgment"
        assert result["data"]["interview_status"]["current_question_index"] == 0
