def get_client_ip(request_meta):
    """
    Best-effort client address for log lines.

    Proxied requests carry the original client first in X-Forwarded-For;
    otherwise REMOTE_ADDR is used. Returns an empty string when neither is set.
    """
    forwarded = request_meta.get('HTTP_X_FORWARDED_FOR', '')
    client = forwarded.split(',')[0].strip() if forwarded else ''
    return client or request_meta.get('REMOTE_ADDR', '').strip()
