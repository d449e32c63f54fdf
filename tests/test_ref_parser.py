import pytest

from git_clean_branches.domain import TrackingState
from git_clean_branches.errors import RefParseError
from git_clean_branches.ref_parser import parse_branch_ref, parse_branch_refs, parse_tracking


def _line(refname, upstream="", track="", commit_time="1700000000", author="Ada Lovelace"):
    return "\x00".join([refname, upstream, track, commit_time, author])


def test_parse_branch_refs_preserves_git_order():
    output = "\n".join(
        [
            _line("refs/heads/zeta", "refs/remotes/origin/zeta", "[gone]"),
            _line("refs/heads/alpha"),
            _line("refs/heads/feature/nested/name", "refs/remotes/origin/x", "[ahead 2]"),
        ]
    ) + "\n"

    refs = parse_branch_refs(output)

    assert [ref.name for ref in refs] == ["zeta", "alpha", "feature/nested/name"]
    assert refs[0].upstream_gone
    assert refs[0].upstream == "refs/remotes/origin/zeta"
    assert refs[1].upstream is None
    assert refs[2].tracking is TrackingState.AHEAD
    assert refs[0].commit_time == 1700000000
    assert refs[0].author == "Ada Lovelace"


def test_parse_branch_refs_handles_empty_output():
    assert parse_branch_refs("") == []


@pytest.mark.parametrize(
    "upstream,track,expected",
    [
        ("", "", TrackingState.UNTRACKED),
        ("refs/remotes/origin/x", "", TrackingState.IN_SYNC),
        ("refs/remotes/origin/x", "[gone]", TrackingState.GONE),
        ("refs/remotes/origin/x", "[ahead 3]", TrackingState.AHEAD),
        ("refs/remotes/origin/x", "[behind 1]", TrackingState.BEHIND),
        ("refs/remotes/origin/x", "[ahead 3, behind 1]", TrackingState.DIVERGED),
    ],
)
def test_parse_tracking(upstream, track, expected):
    assert parse_tracking(upstream, track) is expected


def test_parse_tracking_rejects_unknown_annotation():
    with pytest.raises(RefParseError, match="unrecognized upstream tracking annotation"):
        parse_tracking("refs/remotes/origin/x", "[vanished]")


def test_parse_branch_ref_rejects_wrong_field_count():
    with pytest.raises(RefParseError, match="expected 5 fields"):
        parse_branch_ref("refs/heads/main\x00refs/remotes/origin/main")


def test_parse_branch_ref_rejects_non_branch_refs():
    with pytest.raises(RefParseError, match="not a local branch ref"):
        parse_branch_ref(_line("refs/tags/v1.0"))


def test_parse_branch_ref_rejects_garbage_commit_time():
    with pytest.raises(RefParseError, match="invalid commit time"):
        parse_branch_ref(_line("refs/heads/main", commit_time="yesterday"))


def test_parse_branch_ref_allows_missing_commit_time():
    ref = parse_branch_ref(_line("refs/heads/orphan", "refs/remotes/origin/orphan", "[gone]", commit_time=""))

    assert ref.commit_time is None
    assert ref.upstream_gone


def test_author_with_unicode_line_separator_is_not_split():
    refs = parse_branch_refs(_line("refs/heads/main", author="Odd\u2028Name") + "\n")

    assert len(refs) == 1
    assert refs[0].author == "Odd\u2028Name"
