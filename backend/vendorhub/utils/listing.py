from __future__ import annotations
from typing import Iterable, Tuple
from flask import request, make_response
from sqlalchemy.orm import Query
from vendorhub.config.settings import normalize_pagination
from vendorhub.errors import InvalidArgument
import hashlib
import json


def request_pagination() -> Tuple[int, int]:
    try:
        return normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        raise InvalidArgument(str(e))


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    limit, offset = request_pagination()
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def paginate_list(rows: list) -> Tuple[list, int, int, int]:
    """In-memory counterpart of apply_pagination for results computed outside SQL."""
    limit, offset = request_pagination()
    return rows[offset:offset + limit], len(rows), limit, offset


def compute_etag(body: Iterable, total: int, limit: int, offset: int) -> str:
    seed = f"{json.dumps(list(body), sort_keys=True, default=str)}|{total}|{limit}|{offset}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def make_cached_list_response(rows: list, total: int, limit: int, offset: int):
    """JSON list response carrying an ETag; answers 304 when If-None-Match matches."""
    etag = compute_etag(rows, total, limit, offset)
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag:
        resp = make_response('', 304)
    else:
        resp = make_response(build_list_payload(rows, total, limit, offset))
    resp.headers['ETag'] = etag
    return resp


def list_response(q: Query, serializer):
    """Paginate ``q``, serialize each row and wrap it in a cached list response."""
    paged_q, total, limit, offset = apply_pagination(q)
    rows = [serializer(r) for r in paged_q.all()]
    return make_cached_list_response(rows, total, limit, offset)
