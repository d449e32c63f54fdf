"""
Parser for git for-each-ref output.

Branch metadata is requested with NUL-separated fields, one ref per
line, and turned into typed BranchRef records. Anything that does not
match the requested layout raises RefParseError instead of being
silently misread.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .domain import BranchRef, TrackingState
from .errors import RefParseError

FIELD_SEPARATOR = "\x00"
BRANCH_REF_PREFIX = "refs/heads/"

# Field order matters: parse_branch_ref unpacks in this order.
BRANCH_REF_FORMAT = "%00".join(
    [
        "%(refname)",
        "%(upstream)",
        "%(upstream:track)",
        "%(committerdate:unix)",
        "%(authorname)",
    ]
)
FIELD_COUNT = 5

_TRACK_RE = re.compile(r"^\[(?P<body>[^\]]*)\]$")
_AHEAD_BEHIND_RE = re.compile(r"^(?:ahead (?P<ahead>\d+))?(?:, )?(?:behind (?P<behind>\d+))?$")


def parse_tracking(upstream: str, track: str) -> TrackingState:
    """
    Classify the upstream relationship from %(upstream) and %(upstream:track).

    An empty track annotation means either no upstream at all or an
    upstream that is level with the branch.
    """

    track = track.strip()
    if not track:
        return TrackingState.IN_SYNC if upstream else TrackingState.UNTRACKED

    match = _TRACK_RE.match(track)
    if match is None:
        raise RefParseError(f"unrecognized upstream tracking annotation: {track!r}")

    body = match.group("body")
    if body == "gone":
        return TrackingState.GONE

    counts = _AHEAD_BEHIND_RE.match(body)
    if counts is None or not body:
        raise RefParseError(f"unrecognized upstream tracking annotation: {track!r}")

    ahead = counts.group("ahead")
    behind = counts.group("behind")
    if ahead and behind:
        return TrackingState.DIVERGED
    if ahead:
        return TrackingState.AHEAD
    return TrackingState.BEHIND


def _parse_commit_time(raw: str, refname: str) -> Optional[int]:
    raw = raw.strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise RefParseError(f"invalid commit time {raw!r} for {refname}") from exc


def parse_branch_ref(line: str) -> BranchRef:
    """
    Parse one NUL-separated for-each-ref record.
    """

    fields = line.split(FIELD_SEPARATOR)
    if len(fields) != FIELD_COUNT:
        raise RefParseError(
            f"expected {FIELD_COUNT} fields in branch record, got {len(fields)}: {line!r}"
        )

    refname, upstream, track, commit_time, author = fields
    if not refname.startswith(BRANCH_REF_PREFIX) or refname == BRANCH_REF_PREFIX:
        raise RefParseError(f"not a local branch ref: {refname!r}")

    return BranchRef(
        name=refname[len(BRANCH_REF_PREFIX):],
        upstream=upstream or None,
        tracking=parse_tracking(upstream, track),
        commit_time=_parse_commit_time(commit_time, refname),
        author=author,
    )


def parse_branch_refs(output: str) -> List[BranchRef]:
    """
    Parse the full output of for-each-ref, preserving git's ordering.
    """

    return [parse_branch_ref(line) for line in output.split("\n") if line]
