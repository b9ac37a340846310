"""
Submit-time handlers for built-in field types.

Handlers are called as ``handler(value, field, form, data)`` while a
submission is processed and return the value to store. They raise
FieldValidationError to reject the submission.
"""

import ast
import math
import operator
import re
from typing import Any

import requests

from core.logging_config import get_logger
from core.settings import settings
from schemas.form import Form, FormField

logger = get_logger(__name__)

SLUG_REFERENCE = re.compile(r"%([A-Za-z_][A-Za-z0-9_]*)%")
MAX_EXPONENT = 64

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}


class FieldValidationError(Exception):
    """A submitted value was rejected by its field type"""

    def __init__(self, field_id: str, message: str):
        self.field_id = field_id
        self.message = message
        super().__init__(f"{field_id}: {message}")


def _to_number(value: Any) -> float:
    if isinstance(value, (list, tuple)):
        return sum(_to_number(item) for item in value)
    if isinstance(value, dict):
        return sum(_to_number(item) for item in value.values())
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _evaluate(node: ast.AST, values: dict[str, float]) -> float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body, values)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return float(node.value)
    if isinstance(node, ast.Name):
        return values.get(node.id, 0.0)
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        left = _evaluate(node.left, values)
        right = _evaluate(node.right, values)
        if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
            raise ValueError(f"Exponent too large: {right}")
        try:
            result = _BINARY_OPERATORS[type(node.op)](left, right)
        except ZeroDivisionError:
            return 0.0
        if isinstance(result, complex):
            raise ValueError(f"Complex result for {left} ** {right}")
        return result
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_evaluate(node.operand, values))
    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def evaluate_formula(formula: str, values: dict[str, Any]) -> float:
    """
    Evaluate an arithmetic formula where names refer to submitted values.

    Only numbers, names, parentheses and + - * / % ** are accepted.
    Unknown names count as 0.
    """
    expression = SLUG_REFERENCE.sub(lambda match: match.group(1), formula.strip())
    tree = ast.parse(expression, mode="eval")
    numbers = {key: _to_number(value) for key, value in values.items()}
    return _evaluate(tree, numbers)


def run_calculation(value: Any, field: FormField, form: Form, data: dict[str, Any]) -> Any:
    formula = field.config.get("formular") or field.config.get("formula")
    if not formula:
        return value

    values: dict[str, Any] = {}
    for field_id, form_field in form.fields.items():
        if field_id in data:
            values[field_id] = data[field_id]
            if form_field.slug:
                values[form_field.slug] = data[field_id]

    try:
        result = evaluate_formula(formula, values)
    except (SyntaxError, ValueError, OverflowError) as e:
        logger.error(f"Invalid formula on field {field.ID}: {e}")
        raise FieldValidationError(field.ID, "Invalid calculation") from e

    if not math.isfinite(result):
        logger.error(f"Formula on field {field.ID} produced {result}")
        raise FieldValidationError(field.ID, "Invalid calculation")

    if result.is_integer():
        return int(result)
    return round(result, int(field.config.get("decimal_places", 2)))


def captcha_check(value: Any, field: FormField, form: Form, data: dict[str, Any]) -> Any:
    """Verify a reCAPTCHA response token with the verification endpoint"""
    secret = field.config.get("private_key") or settings.RECAPTCHA_SECRET_KEY
    if not secret:
        logger.error(f"No reCAPTCHA secret configured for field {field.ID}")
        raise FieldValidationError(field.ID, "reCAPTCHA is not configured")

    token = value or data.get("g-recaptcha-response")
    if not token:
        raise FieldValidationError(field.ID, "The captcha was not completed")

    try:
        response = requests.post(
            settings.RECAPTCHA_VERIFY_URL,
            data={"secret": secret, "response": token},
            timeout=10,
        )
        response.raise_for_status()
        result = response.json()
    except requests.RequestException as e:
        logger.error(f"reCAPTCHA verification failed for field {field.ID}: {e}")
        raise FieldValidationError(field.ID, "The captcha could not be verified") from e

    if not result.get("success"):
        logger.info_ctx("reCAPTCHA rejected", field_id=field.ID, errors=result.get("error-codes", []))
        raise FieldValidationError(field.ID, "The captcha was not completed")

    return None
