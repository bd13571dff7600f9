import pytest

from shorty import codec
from shorty.errors import MalformedError, ParseError
from shorty.models import Alias


def test_serialize(alias):
    assert codec.serialize(alias) == "alias gs='git status' # Show repo status #tags:git,vcs #category:git"


def test_serialize__minimal(alias_min):
    assert codec.serialize(alias_min) == "alias ll='ls -la'"


def test_serialize__single_quote_in_command():
    line = codec.serialize(Alias(name="say", command="echo 'hi'"))

    assert line == "alias say='echo '\\''hi'\\'''"
    assert codec.parse_line(line).command == "echo 'hi'"


def test_parse_line(alias):
    parsed = codec.parse_line("alias gs='git status' # Show repo status #tags:git,vcs #category:git")

    assert parsed == alias


def test_parse_line__double_quotes():
    parsed = codec.parse_line('alias greet="echo \\"hello\\" $USER"')

    assert parsed.command == 'echo "hello" $USER'


def test_parse_line__plain_comment_is_note():
    parsed = codec.parse_line("alias ll='ls -la'   # long listing")

    assert parsed.note == "long listing"
    assert parsed.tags == []


@pytest.mark.parametrize("line", ["", "   ", "# a comment", "  # indented comment"])
def test_parse_line__blank_and_comments(line):
    assert codec.parse_line(line) is None


@pytest.mark.parametrize(
    "line",
    [
        "export PATH=/usr/bin",
        "alias broken='git status",
        "alias ll=ls -la",
        "alias if='echo nope'",
    ],
)
def test_parse_line__malformed(line):
    with pytest.raises(ParseError):
        codec.parse_line(line, 7)


def test_parse_error_carries_line_number():
    with pytest.raises(ParseError) as exc_info:
        codec.parse_line("nonsense", 3)

    assert exc_info.value.line_number == 3
    assert exc_info.value.line == "nonsense"
    assert str(exc_info.value).startswith("line 3:")


@pytest.mark.parametrize(
    "item",
    [
        Alias(name="n1", command="echo 1", note="has # hash and %41 percent"),
        Alias(name="n2", command="echo 2", note="looks like #tags:a,b"),
        Alias(name="n3", command="echo 3", note="  padded  "),
        Alias(name="n4", command="echo 4", tags=["with space", "comma,tag", "100%"]),
        Alias(name="n5", command="echo 5", category="my cat#1"),
        Alias(name="n6", command="it's a 'quote' \\ back", note="tags: not a marker"),
        Alias(name="n7", command="echo ünïcødé", note="ünïcødé note", tags=["ü"]),
        Alias(name="n8", command="echo \"$HOME\" | grep -v '#'"),
    ],
)
def test_round_trip(item):
    assert codec.parse_line(codec.serialize(item)) == item


def test_parse_document_collects_errors():
    text = "alias a='x'\nbogus line\n\nalias b='y' # note\n"

    parsed, errors = codec.parse_document(text)

    assert [(number, a.name) for number, a in parsed] == [(1, "a"), (4, "b")]
    assert len(errors) == 1
    assert errors[0].line_number == 2


def test_dump_keeps_unparsed_lines(alias_min):
    content = codec.dump([alias_min], ["bogus line"])

    assert content.startswith(codec.FILE_HEADER)
    assert "alias ll='ls -la'\n" in content
    assert content.endswith(f"{codec.UNPARSED_HEADER}\nbogus line\n")


@pytest.mark.parametrize(
    "item, message",
    [
        (Alias(name="", command="ls"), "must not be empty"),
        (Alias(name="has space", command="ls"), "Invalid alias name"),
        (Alias(name="-dash", command="ls"), "Invalid alias name"),
        (Alias(name="while", command="ls"), "reserved word"),
        (Alias(name="blank", command="   "), "empty command"),
        (Alias(name="multi", command="ls\nrm"), "single line"),
    ],
)
def test_check_alias__rejects(item, message):
    with pytest.raises(MalformedError, match=message):
        codec.check_alias(item)


def test_normalize_command():
    assert codec.normalize_command("  git   status  ") == "git status"
