# src/laila/core/secrets.py
import json
from base64 import b64decode

import boto3

_sm = None
_cache = {}


def _client(region: str | None = None):
    global _sm
    if _sm is None:
        _sm = boto3.client("secretsmanager", region_name=region) if region else boto3.client("secretsmanager")
    return _sm


def get_secret(arn: str, key: str | None = None, region: str | None = None) -> str:
    """
    Fetch a Secrets Manager value (cached per warm container).
    JSON secrets are unpacked when `key` is given, e.g. {"OPENAI_API_KEY": "sk-..."}.
    """
    if not arn:
        return ""
    if arn not in _cache:
        resp = _client(region).get_secret_value(SecretId=arn)
        val = resp.get("SecretString")
        if val is None and "SecretBinary" in resp:
            val = b64decode(resp["SecretBinary"]).decode("utf-8")
        _cache[arn] = val or ""
    val = _cache[arn]
    if key:
        try:
            return str(json.loads(val).get(key, "")).strip()
        except (ValueError, AttributeError):
            return val.strip()
    return val.strip()
