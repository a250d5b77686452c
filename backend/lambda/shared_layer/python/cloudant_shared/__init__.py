"""cloudant_shared — Shared pipeline for the Cloudant actions.

Provides:
    - Invocation envelope decoding (raw web-action request + injected params)
    - IBM Cloud IAM API-key → bearer token exchange
    - Cloudant REST client (_all_docs listing, document insert)
    - "200 OK" response envelope emission
    - Fail-fast stage runner shared by every action
"""

__version__ = "1.0.0"
