import json
from datetime import date
from functools import wraps
from typing import Any, Dict, Iterable, Optional, Tuple

from django.forms.models import model_to_dict
from django.http import JsonResponse


def json_error(message: str, status: int = 400, **extra) -> JsonResponse:
    return JsonResponse({"message": message, **extra}, status=status)


def api_login_required(view_func):
    """Like login_required, but answers API callers with 401 JSON instead of a redirect"""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return json_error("Not authenticated", status=401)
        return view_func(request, *args, **kwargs)

    return wrapper


def read_json(request) -> Tuple[Optional[Dict[str, Any]], Optional[JsonResponse]]:
    """Decode the request body, returning either the payload or an error response"""
    if not request.body:
        return {}, None
    try:
        payload = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        return None, json_error("Invalid JSON body")
    if not isinstance(payload, dict):
        return None, json_error("Invalid JSON body")
    return payload, None


def form_data_from_payload(
    payload: Dict[str, Any],
    field_map: Dict[str, str],
    instance=None,
    fields: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Translate API keys into form field names, starting from the instance for partial updates"""
    data: Dict[str, Any] = {}
    if instance is not None:
        data = model_to_dict(instance, fields=list(fields or field_map.values()))
    for key, field in field_map.items():
        if key in payload:
            data[field] = payload[key]
    return {k: ("" if v is None else v) for k, v in data.items()}


def first_form_error(form) -> str:
    for field, errors in form.errors.items():
        if not errors:
            continue
        if field == "__all__":
            return errors[0]
        return f"{field}: {errors[0]}"
    return "Invalid data"


def parse_id_list(raw: Optional[str]) -> list:
    """'1, 2,x' -> [1, 2]"""
    ids = []
    for part in (raw or "").split(","):
        part = part.strip()
        if part.isdigit():
            ids.append(int(part))
    return ids


def parse_iso_date(value):
    """YYYY-MM-DD (a trailing time part is ignored) -> date, or None"""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value or "")[:10])
    except ValueError:
        return None
