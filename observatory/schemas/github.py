"""GitHub REST and webhook payloads consumed by Observatory.

https://docs.github.com/webhooks-and-events/webhooks/webhook-events-and-payloads
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from unidiff import PatchSet


class Actor(BaseModel):
    id: int
    login: str


class Repository(BaseModel):
    id: int
    name: str
    full_name: str
    fork: Optional[bool] = None  # missing in installation events
    owner: Optional[Actor] = None  # missing in installation events


class PullRequest(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: int
    number: int
    state: str
    title: str
    user: Actor
    html_url: str
    created_at: datetime
    updated_at: datetime

    # Attached by the client after fetching /pull/{n}.diff
    diff: Optional[PatchSet] = Field(default=None, exclude=True)


class InstallationIdWrapper(BaseModel):
    """Pull request events only carry the installation id"""

    id: int


class Installation(BaseModel):
    id: int
    account: Actor
    app_id: int

    # Filled in on registration, never part of the payload
    repositories: List[Repository] = Field(default_factory=list, exclude=True)


class PullRequestEvent(BaseModel):
    action: str
    number: int
    pull_request: PullRequest
    repository: Repository
    installation: InstallationIdWrapper
    sender: Actor


class InstallationEvent(BaseModel):
    action: str
    installation: Installation
    sender: Actor
    repositories: List[Repository] = Field(default_factory=list)


class InstallationRepositoriesEvent(BaseModel):
    action: str
    installation: Installation
    sender: Actor
    repositories_added: List[Repository] = Field(default_factory=list)
    repositories_removed: List[Repository] = Field(default_factory=list)


class InstallationToken(BaseModel):
    token: str
    expires_at: datetime
    repositories: Optional[List[Repository]] = None
    permissions: Dict[str, str] = Field(default_factory=dict)


class InstallationRepositories(BaseModel):
    total_count: int
    repositories: List[Repository]


class IssueComment(BaseModel):
    body: str
