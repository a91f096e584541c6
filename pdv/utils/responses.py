"""JSON helpers shared by the blueprints."""
from flask import jsonify, request


def request_data() -> dict:
    """Payload from a JSON body or a posted form."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def result_response(result, **extra):
    """Serialize an OperationResult (plus extra keys) with its status code."""
    body = result.to_dict()
    body.update(extra)
    return jsonify(body), result.status_code
