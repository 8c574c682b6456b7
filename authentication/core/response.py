def standardized_response(success=True, data=None, message=None, error=None, error_code=None, **extra):
    """
    Build the JSON envelope shared by every API endpoint.

    Keys are only included when they carry a value, so a successful call
    looks like ``{"success": true, "data": ...}`` and a failure like
    ``{"success": false, "error": ...}``.
    """
    payload = {"success": success}
    if message is not None:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    if error is not None:
        payload["error"] = error
    if error_code is not None:
        payload["error_code"] = error_code
    payload.update(extra)
    return payload
