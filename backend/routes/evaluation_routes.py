"""
Evaluation API routes.
Handles text extraction from uploaded PDFs, AI evaluation of an answer
sheet, and the rules-definition chat. Results returned here are NOT saved;
the teacher reviews them and saves through the report routes.
"""
import logging
from flask import Blueprint, request, jsonify

from backend.services import gemini_service
from backend.services.gemini_service import EvaluationError, RULES_GREETING
from backend.services.uploads import validate_pdf

logger = logging.getLogger(__name__)

evaluation_bp = Blueprint('evaluation', __name__)

REQUIRED_FIELDS = ('submission_id', 'student_name', 'roll_no', 'subject')
MISSING_INPUT_MESSAGE = "Please fill out all fields and upload both PDF files."


def _json_object() -> dict:
    """The JSON request body if it is an object, else an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _extract_upload(file_storage) -> str:
    """Validate one uploaded PDF and return its extracted text."""
    data = file_storage.read()
    validate_pdf(data, file_storage.filename, file_storage.mimetype)
    return gemini_service.extract_text_from_file(data, 'application/pdf')


@evaluation_bp.route('/api/extract-text', methods=['POST'])
def extract_text():
    """Extract the text of one uploaded PDF."""
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({"error": "No file uploaded"}), 400

    try:
        text = _extract_upload(upload)
        return jsonify({"text": text, "filename": upload.filename})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except EvaluationError as e:
        logger.error("Text extraction failed for %s: %s", upload.filename, e)
        return jsonify({"error": str(e)}), 502
    except RuntimeError as e:
        logger.error("Text extraction error: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception as e:
        logger.exception("Unexpected text extraction error: %s", e)
        return jsonify({"error": f"Text extraction failed: {e}"}), 500


@evaluation_bp.route('/api/evaluate', methods=['POST'])
def evaluate_upload():
    """
    Evaluate an answer sheet from two uploaded PDFs.

    Form fields: submission_id, student_name, roll_no, subject, custom_rules
    Files: question_paper, answer_sheet
    """
    form = request.form
    fields = {name: (form.get(name) or '').strip() for name in REQUIRED_FIELDS}
    question_paper = request.files.get('question_paper')
    answer_sheet = request.files.get('answer_sheet')

    if not all(fields.values()) or not question_paper or not answer_sheet:
        return jsonify({"error": MISSING_INPUT_MESSAGE}), 400

    try:
        question_text = _extract_upload(question_paper)
        answer_text = _extract_upload(answer_sheet)
        result = gemini_service.evaluate_answer_sheet(
            question_text=question_text,
            answer_text=answer_text,
            custom_rules=form.get('custom_rules', ''),
            **fields
        )
        return jsonify({"result": result})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except EvaluationError as e:
        logger.error("Evaluation failed for %s: %s", fields['submission_id'], e)
        return jsonify({"error": f"Failed to evaluate answer sheet: {e}"}), 502
    except RuntimeError as e:
        logger.error("Evaluation error: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception as e:
        logger.exception("Unexpected evaluation error: %s", e)
        return jsonify({"error": f"Failed to evaluate answer sheet: {e}"}), 500


@evaluation_bp.route('/api/evaluate-text', methods=['POST'])
def evaluate_text():
    """Evaluate already-extracted question paper and answer sheet text."""
    data = _json_object()
    fields = {name: str(data.get(name) or '').strip() for name in REQUIRED_FIELDS}
    question_text = str(data.get('question_text') or '')
    answer_text = str(data.get('answer_text') or '')

    if not all(fields.values()) or not question_text.strip() or not answer_text.strip():
        return jsonify({"error": "All fields, the question paper text and the answer text are required."}), 400

    try:
        result = gemini_service.evaluate_answer_sheet(
            question_text=question_text,
            answer_text=answer_text,
            custom_rules=str(data.get('custom_rules') or ''),
            **fields
        )
        return jsonify({"result": result})
    except EvaluationError as e:
        logger.error("Evaluation failed for %s: %s", fields['submission_id'], e)
        return jsonify({"error": f"Failed to evaluate answer sheet: {e}"}), 502
    except RuntimeError as e:
        logger.error("Evaluation error: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception as e:
        logger.exception("Unexpected evaluation error: %s", e)
        return jsonify({"error": f"Failed to evaluate answer sheet: {e}"}), 500


@evaluation_bp.route('/api/rules-chat', methods=['GET'])
def rules_chat_greeting():
    """Opening message of the rules chat."""
    return jsonify({"messages": [{"role": "model", "text": RULES_GREETING}]})


@evaluation_bp.route('/api/rules-chat', methods=['POST'])
def rules_chat():
    """Send the conversation so far and get the assistant's reply."""
    data = _json_object()
    messages = data.get('messages') or []
    if not isinstance(messages, list):
        return jsonify({"error": "messages must be a list"}), 400
    # The greeting is local UI text, not part of the model conversation
    messages = [m for m in messages
                if isinstance(m, dict) and not (m.get('role') == 'model' and m.get('text') == RULES_GREETING)]

    try:
        reply = gemini_service.get_rules_from_chat(messages)
        return jsonify({"reply": reply})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except (EvaluationError, RuntimeError) as e:
        logger.error("Rules chat failed: %s", e)
        return jsonify({"error": "Sorry, I encountered an error. Please try again."}), 502
    except Exception as e:
        logger.exception("Unexpected rules chat error: %s", e)
        return jsonify({"error": "Sorry, I encountered an error. Please try again."}), 500


@evaluation_bp.route('/api/rules-chat/save', methods=['POST'])
def save_rules():
    """Pick the rules to keep from a finished conversation."""
    data = _json_object()
    messages = data.get('messages')
    if not isinstance(messages, list):
        messages = []
    rules = gemini_service.rules_from_conversation(
        [m for m in messages if isinstance(m, dict)],
        str(data.get('initial_rules') or '')
    )
    return jsonify({"rules": rules})
