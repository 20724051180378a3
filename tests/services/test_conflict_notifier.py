import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from conftest import diff_text
from observatory.core.exceptions import RemoteError
from observatory.schemas.conflict import Conflict, ConflictType
from observatory.services.conflict_notifier import ConflictNotifier
from observatory.services.diff import parse_diff
from observatory.services.github_client import GitHubClient


@pytest.fixture
def client():
    return Mock(spec=GitHubClient)


def serve_diffs(client, diffs):
    """Make client.attach_diff attach diffs by pull number; a None entry fails"""

    async def attach_diff(full_repo_name, pull):
        paths = diffs[pull.number]
        if paths is None:
            raise RemoteError("boom", f"https://github.com/{full_repo_name}/pull/{pull.number}.diff", 500)
        pull.diff = parse_diff(diff_text(*paths))
        return pull

    client.attach_diff = AsyncMock(side_effect=attach_diff)


@pytest.mark.asyncio
async def test_process_pull_posts_each_conflict(client, make_pull):
    new = make_pull(10, "guide/en.md", "faq/es.md")
    client.pulls = AsyncMock(
        return_value=[make_pull(3, with_diff=False), make_pull(4, with_diff=False), new]
    )
    serve_diffs(client, {3: ["guide/es.md"], 4: ["faq/es.md", "other/en.md"]})
    client.post_comment = AsyncMock()

    notifier = ConflictNotifier(client)
    conflicts = await notifier.process_pull("docs/site", new)

    assert [(c.kind, c.trigger, c.original) for c in conflicts] == [
        (ConflictType.EXISTING_CHANGE, 10, 4),
        (ConflictType.NEW_ORIGINAL_CHANGE, 3, 10),
    ]
    notified = [call.args[1] for call in client.post_comment.await_args_list]
    assert notified == [10, 3]
    assert "faq/es.md" in client.post_comment.await_args_list[0].args[2]


@pytest.mark.asyncio
async def test_new_pull_without_diff_is_fetched(client, make_pull):
    new = make_pull(10, with_diff=False)
    client.pulls = AsyncMock(return_value=[new])
    serve_diffs(client, {10: ["guide/en.md"]})
    client.post_comment = AsyncMock()

    assert await ConflictNotifier(client).process_pull("docs/site", new) == []
    assert new.diff is not None
    client.post_comment.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_pair_does_not_stop_others(client, make_pull):
    new = make_pull(10, "guide/es.md")
    client.pulls = AsyncMock(
        return_value=[make_pull(1, with_diff=False), make_pull(2, with_diff=False)]
    )
    serve_diffs(client, {1: None, 2: ["guide/en.md"]})
    client.post_comment = AsyncMock()

    conflicts = await ConflictNotifier(client).process_pull("docs/site", new)

    assert [(c.kind, c.original) for c in conflicts] == [(ConflictType.EXISTING_ORIGINAL_CHANGE, 2)]
    client.post_comment.assert_awaited_once()


@pytest.mark.asyncio
async def test_conflicts_are_posted_once(client, make_pull):
    new = make_pull(10, "guide/es.md")
    client.pulls = AsyncMock(side_effect=lambda repo: [make_pull(2, with_diff=False)])
    serve_diffs(client, {2: ["guide/es.md"]})
    client.post_comment = AsyncMock()

    notifier = ConflictNotifier(client)
    await notifier.process_pull("docs/site", new)
    await notifier.process_pull("docs/site", new)

    client.post_comment.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_post_can_be_retried(client, make_pull):
    new = make_pull(10, "guide/es.md")
    client.pulls = AsyncMock(side_effect=lambda repo: [make_pull(2, with_diff=False)])
    serve_diffs(client, {2: ["guide/es.md"]})
    client.post_comment = AsyncMock(side_effect=[RemoteError("down", "url", 502), None])

    notifier = ConflictNotifier(client)
    await notifier.process_pull("docs/site", new)
    await notifier.process_pull("docs/site", new)

    assert client.post_comment.await_count == 2


@pytest.mark.asyncio
async def test_diff_downloads_are_bounded(client, make_pull):
    new = make_pull(100, "guide/es.md")
    client.pulls = AsyncMock(
        return_value=[make_pull(number, with_diff=False) for number in range(1, 31)]
    )
    in_flight = 0
    peak = 0

    async def attach_diff(full_repo_name, pull):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        pull.diff = parse_diff(diff_text("other/en.md"))
        return pull

    client.attach_diff = AsyncMock(side_effect=attach_diff)

    conflicts = await ConflictNotifier(client, max_concurrent_diffs=3).find_conflicts("docs/site", new)

    assert conflicts == []
    assert client.attach_diff.await_count == 30
    assert peak == 3


@pytest.mark.asyncio
async def test_forgotten_pull_can_be_notified_again(client, make_pull):
    new = make_pull(10, "guide/es.md")
    client.pulls = AsyncMock(side_effect=lambda repo: [make_pull(2, with_diff=False)])
    serve_diffs(client, {2: ["guide/es.md"]})
    client.post_comment = AsyncMock()

    notifier = ConflictNotifier(client)
    await notifier.process_pull("docs/site", new)
    await notifier.process_pull("docs/other", new)
    notifier.forget_pull("docs/site", 2)

    assert len(notifier._posted) == 1
    await notifier.process_pull("docs/site", new)
    await notifier.process_pull("docs/other", new)

    assert client.post_comment.await_count == 3


def test_forget_pull_keeps_unrelated_pulls(client, make_pull):
    notifier = ConflictNotifier(client)
    kept = Conflict.existing_change(10, 4, "docs/site#4", ["faq/es.md"])
    dropped = Conflict.existing_change(10, 2, "docs/site#2", ["guide/es.md"])
    notifier._posted = {("docs/site", kept), ("docs/site", dropped)}

    notifier.forget_pull("docs/site", 2)

    assert notifier._posted == {("docs/site", kept)}
