"""Reusable test helpers for API tests.

Patterns unified:
 - Auth header creation using direct JWT claims (when bypassing /login) or login based.
 - Creation + transition sequencing with assertion helpers.
"""
from __future__ import annotations
from typing import Dict, List, Optional
from flask_jwt_extended import create_access_token
from vendorhub.constants.permissions import ALL_CAPABILITY_PATHS

# ---------- Generic Auth Helpers ---------- #

def jwt_headers(vendor_uid: str, perms: Optional[List[str]] = None, level: int = 1):
    token = create_access_token(identity=vendor_uid, additional_claims={
        'perms': list(ALL_CAPABILITY_PATHS) if perms is None else perms,
        'level': level,
    })
    return {'Authorization': f'Bearer {token}'}


def login_headers(client, email: str, password: str = 'pw'):
    resp = client.post('/auth/login', json={'email': email, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}

# ---------- Assertion Helpers ---------- #

def assert_transition(client, url: str, headers: Dict[str,str], payload: dict, expected_status: int, expected_body_key: str = 'status', expected_body_value: str = None):
    resp = client.post(url, json=payload, headers=headers)
    assert resp.status_code == expected_status, resp.get_json()
    if expected_status < 400 and expected_body_value is not None:
        body = resp.get_json()
        assert body[expected_body_key] == expected_body_value
    return resp


def create_resource_and_assert(client, url: str, payload: dict, headers: Dict[str,str], expected_status_field: str = 'status', expected_initial_status: str = None):
    resp = client.post(url, json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    if expected_initial_status:
        assert body[expected_status_field] == expected_initial_status
    return body


def assert_error(resp, status: int, kind: str = None):
    assert resp.status_code == status, resp.get_json()
    body = resp.get_json()
    assert body['error']['status'] == status
    if kind:
        assert body['error']['kind'] == kind
    return body

__all__ = ['jwt_headers', 'login_headers', 'assert_transition', 'create_resource_and_assert', 'assert_error']
