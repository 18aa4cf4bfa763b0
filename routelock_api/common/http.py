# routelock_api/common/http.py
from flask import jsonify, request


def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status


def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    if errors: err["errors"] = errors
    return jsonify({"success": False, "error": err}), status


def json_object():
    """Request body as a dict; {} when empty, None when it is not a JSON object."""
    d = request.get_json(silent=True, force=True)
    if d is None:
        return {}
    return d if isinstance(d, dict) else None
