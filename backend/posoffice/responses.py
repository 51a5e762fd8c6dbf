# Overview: Uniform JSON response envelope for every API route.

from flask import jsonify


def success(message: str = "Operation successful", data=None, status: int = 200):
    """{success: true, message, data} with the given status."""
    return jsonify({
        "success": True,
        "message": message,
        "data": data,
    }), status


def failure(message: str = "error message", status: int = 400, details: dict | None = None):
    body = {
        "success": False,
        "message": message,
        "data": None,
    }
    if details:
        body["details"] = details
    return jsonify(body), status
