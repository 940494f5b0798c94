"""
Gemini Service
==============
All calls to the Google Gemini API: text extraction from uploaded papers,
the rules-definition chat, and the question-by-question evaluation.

Student names are not sent to the model. Only the question paper, the
answer sheet text and the teacher's rules are.
"""
import json
import logging
import re

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from backend.config import GEMINI_API_KEY, config
from backend.services.grade_calculator import assemble_result
from backend.services.plagiarism import build_plagiarism_report, check_plagiarism

logger = logging.getLogger(__name__)


class EvaluationError(RuntimeError):
    """Raised when the AI service cannot produce a usable answer."""


EXTRACTION_PROMPT = ("Extract all text clearly and accurately from this handwritten "
                     "or printed answer sheet.")

RULES_SYSTEM_INSTRUCTION = """You are a helpful AI assistant for a teacher. Your purpose is to help the teacher create a set of clear, structured rules for evaluating an exam.
- When the teacher provides instructions, rephrase them as a clear, numbered list to confirm your understanding. For example, if they say 'q1 is 10 marks', you should say '1. Question 1 is worth 10 marks.'
- If instructions are ambiguous, ask for clarification.
- Combine all confirmed rules into a single, comprehensive list.
- Your final response in a turn, after the user has provided rules, should only be the summarized list of rules. Do not add conversational filler like 'Here are the rules:'. Just output the list.
- If the chat history is empty, start the conversation by greeting the teacher and asking them to describe the marking scheme."""

RULES_GREETING = ("Hello! I'm here to help you set up the evaluation rules. Please tell me how "
                  "you'd like me to grade the answer sheet. For example, you can specify marks "
                  "for each question, keywords to look for, or negative marking policies.")

EVALUATION_JSON_SHAPE = """{
  "evaluation": [
    {
      "question": "the question being evaluated",
      "student_answer": "a brief summary of the student's answer",
      "marks_awarded": 0,
      "max_marks": 0,
      "feedback": "specific, constructive feedback for this answer"
    }
  ],
  "summary": {
    "overall_feedback": "overall performance, strengths and areas for improvement"
  }
}"""


def _get_model(model_name: str, system_instruction: str = None):
    """Configure the SDK and return a GenerativeModel."""
    if not GEMINI_API_KEY:
        raise EvaluationError("GEMINI_API_KEY not configured. Add it to your .env file.")
    genai.configure(api_key=GEMINI_API_KEY)
    if system_instruction:
        return genai.GenerativeModel(model_name, system_instruction=system_instruction)
    return genai.GenerativeModel(model_name)


def _response_text(send, *args, **kwargs) -> str:
    """
    Call the model and return the response text.

    API failures (quota, bad key, network) and blocked responses, whose
    `.text` raises ValueError, come back as EvaluationError.
    """
    try:
        response = send(*args, **kwargs)
        return response.text or ""
    except google_exceptions.GoogleAPIError as e:
        logger.error("Gemini API error: %s", e)
        raise EvaluationError(f"Gemini API error: {e}") from e
    except ValueError as e:
        logger.warning("Gemini returned no usable text: %s", e)
        raise EvaluationError("The AI response was blocked or empty.") from e


def extract_text_from_file(data: bytes, mime_type: str) -> str:
    """Transcribe a handwritten or printed document (PDF or image bytes)."""
    model = _get_model(config.extraction_model)
    text = _response_text(model.generate_content, [
        EXTRACTION_PROMPT,
        {"mime_type": mime_type, "data": data},
    ]).strip()
    if not text:
        raise EvaluationError("No text could be extracted from the uploaded file.")
    logger.info("Extracted %d characters from %s upload", len(text), mime_type)
    return text


def _to_gemini_history(messages: list) -> list:
    history = []
    for msg in messages or []:
        role = "model" if msg.get("role") == "model" else "user"
        history.append({"role": role, "parts": [msg.get("text", "")]})
    return history


def get_rules_from_chat(messages: list) -> str:
    """
    Continue the rules-definition conversation and return the model's reply.

    messages: [{"role": "user" | "model", "text": "..."}], oldest first.
    The last message must come from the teacher. An empty list opens the
    conversation.
    """
    history = _to_gemini_history(messages)
    if history and history[-1]["role"] != "user":
        raise ValueError("The last chat message must come from the teacher")

    model = _get_model(config.grading_model, system_instruction=RULES_SYSTEM_INSTRUCTION)
    chat = model.start_chat(history=history[:-1] if history else [])
    last_parts = history[-1]["parts"] if history else ["Hello"]
    return _response_text(chat.send_message, last_parts).strip()


def rules_from_conversation(messages: list, initial_rules: str = "") -> str:
    """The rules to keep: the model's latest message, else the existing rules."""
    for msg in reversed(messages or []):
        if msg.get("role") == "model" and msg.get("text") and msg.get("text") != RULES_GREETING:
            return msg["text"]
    return initial_rules or ""


def build_evaluation_prompt(question_text: str, answer_text: str, custom_rules: str = "") -> str:
    if custom_rules and custom_rules.strip():
        rules_instruction = (
            "A specific set of custom grading rules has been provided. You MUST follow these "
            f"rules strictly when grading. The rules are:\n---\n{custom_rules.strip()}\n---"
        )
    else:
        rules_instruction = "Evaluate based on general academic standards for the subject matter."

    return f"""You are an expert and strict examiner evaluating a student's exam paper.
Provide a detailed, question-by-question evaluation. Work through these steps in order:

STEP 1 - UNDERSTAND THE QUESTION PAPER
Read the entire QUESTION PAPER below. Understand the scope of each question, the marks
allocated and what is being asked.

STEP 2 - APPLY GRADING RULES
Adhere strictly to the grading rules. {rules_instruction}

STEP 3 - EVALUATE THE ANSWERS
1. For each question on the question paper, locate the corresponding answer in the
   student's answer sheet. An unanswered question gets 0 marks.
2. Award marks for correctness, completeness and clarity. Be strict with partial marks.
   Never award more than the question's maximum marks.
3. Give concise, specific feedback for each answer: point out mistakes and suggest
   improvements.
4. Finish with a summary of the student's overall performance.

STEP 4 - FORMAT THE OUTPUT
Respond with ONLY a JSON object in exactly this format:
{EVALUATION_JSON_SHAPE}

QUESTION PAPER:
---
{question_text}
---

STUDENT'S ANSWER SHEET:
---
{answer_text}
---
"""


def parse_evaluation_response(response_text: str):
    """
    Parse the model's JSON into (evaluation_items, overall_feedback).

    Tolerates markdown code fences and leading/trailing prose.
    """
    text = (response_text or "").strip()
    text = re.sub(r'^```(?:json)?\s*|\s*```$', '', text)

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        json_match = re.search(r'\{.*\}', text, re.DOTALL)
        if not json_match:
            raise EvaluationError("AI response did not contain a JSON object")
        try:
            data = json.loads(json_match.group())
        except json.JSONDecodeError as e:
            raise EvaluationError(f"AI returned invalid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("evaluation"), list):
        raise EvaluationError("AI response is missing the 'evaluation' list")

    summary = data.get("summary") or {}
    if not isinstance(summary, dict):
        summary = {}
    overall_feedback = summary.get("overall_feedback", summary.get("overallFeedback", ""))
    items = [item for item in data["evaluation"] if isinstance(item, dict)]
    return items, overall_feedback or ""


def evaluate_answer_sheet(submission_id: str, student_name: str, roll_no: str, subject: str,
                          question_text: str, answer_text: str, custom_rules: str = "",
                          rng=None) -> dict:
    """
    Run the plagiarism check and the AI evaluation, then assemble the result.

    The returned result is not persisted; the teacher reviews it first.
    """
    plagiarism = check_plagiarism(answer_text, rng=rng)

    model = _get_model(config.grading_model)
    prompt = build_evaluation_prompt(question_text, answer_text, custom_rules)
    response_text = _response_text(
        model.generate_content,
        prompt,
        generation_config=genai.types.GenerationConfig(
            temperature=0.2,
            response_mime_type="application/json",
        )
    )
    items, overall_feedback = parse_evaluation_response(response_text)
    logger.info("Evaluated submission %s: %d questions", submission_id, len(items))

    return assemble_result(
        submission_id=submission_id,
        student_name=student_name,
        roll_no=roll_no,
        subject=subject,
        evaluation=items,
        overall_feedback=overall_feedback,
        plagiarism_report=build_plagiarism_report(plagiarism),
        extracted_text=answer_text,
    )
