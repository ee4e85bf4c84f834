"""In-memory key-set fetcher for local development without Cloudflare.

Serves JWKS documents registered up front, parsed by the same rules as
documents fetched over HTTPS.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Mapping

from portcullis.cloudflare.jwks import parse_key_set
from portcullis.core.key_fetcher import KeySetFetcher
from portcullis.exceptions import KeyDiscoveryError
from portcullis.models import KeySet


class StaticKeySetFetcher(KeySetFetcher):
    """Key-set fetcher backed by a dict of issuer -> JWKS document.

    Every requested issuer is recorded in ``requested`` so callers can
    check whether key discovery happened.
    """

    def __init__(self, documents: Mapping[str, Mapping[str, Any]]):
        self._documents: Dict[str, Mapping[str, Any]] = dict(documents)
        self.requested: List[str] = []

    def add_document(self, issuer: str, document: Mapping[str, Any]) -> None:
        self._documents[issuer] = document

    def fetch(self, issuer: str) -> KeySet:
        self.requested.append(issuer)
        document = self._documents.get(issuer)
        if document is None:
            raise KeyDiscoveryError(f"No key set registered for issuer: {issuer}", issuer=issuer)
        return parse_key_set(issuer, document, fetched_at=time.time())
