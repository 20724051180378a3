import hashlib
import hmac
from datetime import datetime, timezone
from typing import Dict, Tuple

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from observatory.schemas.github import Actor, Installation, PullRequest, Repository
from observatory.services.diff import parse_diff


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def diff_text(*paths: str) -> str:
    chunks = []
    for path in paths:
        chunks.append(
            f"diff --git a/{path} b/{path}\n"
            "index 1111111..2222222 100644\n"
            f"--- a/{path}\n"
            f"+++ b/{path}\n"
            "@@ -1 +1 @@\n"
            "-old line\n"
            "+new line\n"
        )
    return "".join(chunks)


def pull_payload(number: int) -> Dict:
    return {
        "id": 1000 + number,
        "number": number,
        "state": "open",
        "title": f"Pull {number}",
        "user": {"id": 7, "login": "octocat"},
        "html_url": f"https://github.com/docs/site/pull/{number}",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-02T00:00:00Z",
    }


@pytest.fixture
def make_pull():
    """Build a pull request with a diff touching the given paths"""

    def _make_pull(number: int, *paths: str, with_diff: bool = True) -> PullRequest:
        pull = PullRequest.model_validate(pull_payload(number))
        if with_diff:
            pull.diff = parse_diff(diff_text(*paths))
        return pull

    return _make_pull


@pytest.fixture
def installation():
    return Installation(id=42, account=Actor(id=1, login="docs"), app_id=123)


@pytest.fixture
def repository():
    return Repository(id=9, name="site", full_name="docs/site")


@pytest.fixture(scope="session")
def private_key_pem():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def clock():
    return FakeClock(datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def webhook_signature():
    """Fixture to generate webhook signatures for testing"""

    def _generate_signature(webhook_secret: str, body: bytes) -> Tuple[Dict[str, str], bytes]:
        signature = hmac.new(
            key=webhook_secret.encode(),
            msg=body,
            digestmod=hashlib.sha256,
        ).hexdigest()

        headers = {"X-Hub-Signature-256": f"sha256={signature}"}

        return headers, body

    return _generate_signature
