"""
Client Authentication Middleware.

Sign-in is handled by the external auth layer; requests reach the engine
with the authenticated client's id in the X-Client-ID header.
"""
from functools import wraps
from typing import Optional

from flask import g, request

from ..extensions import db
from ..models import Client
from ..utils.errors import not_found, unauthorized


def get_client_id_from_request() -> Optional[str]:
    client_id = request.headers.get('X-Client-ID', '').strip()
    return client_id or None


def require_client(f):
    """
    Decorator to require an authenticated client.

    Sets g.client_id and g.client.

    Usage:
        @require_client
        def my_endpoint():
            client = g.client
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        client_id = get_client_id_from_request()
        if not client_id:
            return unauthorized('Client identification required')

        client = db.session.get(Client, client_id)
        if not client:
            return not_found(f'Client {client_id} not found')

        g.client_id = client.id
        g.client = client
        return f(*args, **kwargs)

    return decorated_function
