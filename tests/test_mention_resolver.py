import pytest

from cardboard.richtext import (
    AttachmentCodec,
    InMemoryUserDirectory,
    MentionResolver,
    ResolverConfig,
    SqlAlchemyUserDirectory,
    UserRecord,
    to_plain_text,
)
from cardboard.richtext.attachments import parse_global_id


USERS = [
    UserRecord(id="u-ada", username="ada", display_name="Ada Lovelace"),
    UserRecord(id="u-grace", username="grace", display_name=None),
    UserRecord(id="u-emile", username="Émile", display_name="Émile Borel"),
]


@pytest.fixture(params=["memory", "sqlalchemy"])
def directory(request, tmp_path):
    if request.param == "memory":
        return InMemoryUserDirectory(USERS)
    repo = SqlAlchemyUserDirectory(f"sqlite+pysqlite:///{tmp_path / 'users.db'}")
    for user in USERS:
        repo.save_user(user)
    return repo


@pytest.fixture
def codec():
    return AttachmentCodec("test-secret")


@pytest.fixture
def resolver(codec):
    return MentionResolver(codec)


def test_content_without_at_sign_is_unchanged(resolver, directory):
    for content in ["", "plain text", "<p>no mentions here</p>", "a & b < c"]:
        assert resolver.resolve(content, directory) == content


def test_resolves_known_user(resolver, codec, directory):
    output = resolver.resolve("hello @ada, welcome", directory)

    assert output.startswith("hello <action-text-attachment ")
    assert output.endswith("</action-text-attachment>, welcome")
    assert "@ada" not in output
    refs = codec.extract(output)
    assert len(refs) == 1
    assert refs[0].content == "Ada Lovelace"
    assert codec.locate(refs[0].sgid, directory).id == "u-ada"


def test_unknown_user_is_preserved(resolver, directory):
    assert resolver.resolve("cc @nobody", directory) == "cc @nobody"


def test_lookup_is_case_insensitive(resolver, codec, directory):
    output = resolver.resolve("ping @Ada", directory)
    refs = codec.extract(output)
    assert [codec.locate(r.sgid, directory).username for r in refs] == ["ada"]


def test_fragment_falls_back_to_username(resolver, codec, directory):
    refs = codec.extract(resolver.resolve("@grace", directory))
    assert refs[0].content == "grace"


def test_mixed_known_and_unknown_tokens(resolver, codec, directory):
    output = resolver.resolve("@ada and @nobody and @grace", directory)
    assert " and @nobody and " in output
    assert [r.content for r in codec.extract(output)] == ["Ada Lovelace", "grace"]


def test_token_needs_non_word_left_boundary(resolver, directory):
    assert resolver.resolve("mail ada@ada.dev", directory) == "mail ada@ada.dev"


def test_resolution_is_idempotent(resolver, directory):
    once = resolver.resolve("<p>hi @ada and @nobody</p>", directory)
    assert resolver.resolve(once, directory) == once


def test_does_not_match_inside_markup(resolver, directory):
    content = '<a href="https://example.com/@ada">profile</a>'
    assert resolver.resolve(content, directory) == content


def test_at_sign_inside_display_name_is_not_rescanned(codec):
    directory = InMemoryUserDirectory([UserRecord(id="u-1", username="bob", display_name="Bob @ada")])
    directory.save_user(UserRecord(id="u-2", username="ada", display_name="Ada"))
    resolver = MentionResolver(codec)

    once = resolver.resolve("hey @bob", directory)
    assert resolver.resolve(once, directory) == once
    assert [r.content for r in codec.extract(once)] == ["Bob @ada"]


def test_repeated_tokens_are_looked_up_once(resolver):
    class CountingDirectory(InMemoryUserDirectory):
        calls = 0

        def find_by_username(self, username):
            CountingDirectory.calls += 1
            return super().find_by_username(username)

    directory = CountingDirectory([UserRecord(id="u-ada", username="ada", display_name="Ada")])
    resolver.resolve("@ada @ADA @ada @nobody @nobody", directory)
    assert CountingDirectory.calls == 2


def test_directory_failure_propagates(resolver):
    class BrokenDirectory(InMemoryUserDirectory):
        def find_by_username(self, username):
            raise ConnectionError("directory down")

    with pytest.raises(ConnectionError):
        resolver.resolve("hello @ada", BrokenDirectory())


def test_mentioned_users_in_first_appearance_order(resolver, directory):
    users = resolver.mentioned_users("@grace then @ada then @Grace and @nobody", directory)
    assert [u.username for u in users] == ["grace", "ada"]


def test_tampered_sgid_is_rejected(codec, directory):
    user = directory.find_by_username("ada")
    sgid = codec.sign(user)
    assert codec.verify(sgid) == "gid://cardboard/User/u-ada"
    assert codec.verify("A" + sgid[1:]) is None
    assert AttachmentCodec("other-secret").verify(sgid) is None
    assert codec.locate(sgid + "x", directory) is None


def test_parse_global_id():
    assert parse_global_id("gid://cardboard/User/u-1") == ("User", "u-1")
    assert parse_global_id("gid://elsewhere/User/u-1") is None
    assert parse_global_id("gid://cardboard/User") is None


def test_display_fragment_is_escaped(codec):
    directory = InMemoryUserDirectory([UserRecord(id="u-1", username="eve", display_name='Eve "<b>"')])
    output = MentionResolver(codec).resolve("@eve", directory)
    assert "<b>" not in output
    assert codec.extract(output)[0].content == 'Eve "<b>"'


def test_plain_text_uses_display_fragment(resolver, directory):
    output = resolver.resolve("<p>hello @ada, welcome</p><p>cc @nobody</p>", directory)
    assert to_plain_text(output) == "hello Ada Lovelace, welcome cc @nobody"


def test_resolver_from_config(directory):
    config = ResolverConfig(secret_key="test-secret", content_type="application/x-mention")
    output = MentionResolver.from_config(config).resolve("@ada", directory)

    codec = AttachmentCodec("test-secret")
    ref = codec.extract(output)[0]
    assert ref.content_type == "application/x-mention"
    assert codec.locate(ref.sgid, directory).username == "ada"


def test_codec_requires_secret():
    with pytest.raises(ValueError):
        AttachmentCodec("")


def test_angle_brackets_in_text_do_not_hide_mentions(resolver, codec, directory):
    output = resolver.resolve("if a < b then @ada wins, c > d", directory)

    refs = codec.extract(output)
    assert [codec.locate(r.sgid, directory).id for r in refs] == ["u-ada"]
    assert "@ada" not in output
    assert to_plain_text(output) == "if a < b then Ada Lovelace wins, c > d"


def test_gt_inside_attribute_value_is_not_scanned(resolver, directory):
    content = '<a title="x>y" href="/u/@ada">profile</a>'
    assert resolver.resolve(content, directory) == content


def test_mentions_inside_nested_markup(resolver, codec, directory):
    output = resolver.resolve('<p><a title="x>y" href="/u/@ada">hi @ada</a> <!-- @grace --></p>', directory)

    assert [r.content for r in codec.extract(output)] == ["Ada Lovelace"]
    assert 'href="/u/@ada"' in output
    assert "<!-- @grace -->" in output


def test_lookup_folds_non_ascii_case(resolver, codec, directory):
    output = resolver.resolve("merci @émile", directory)
    refs = codec.extract(output)
    assert [codec.locate(r.sgid, directory).id for r in refs] == ["u-emile"]
    assert refs[0].content == "Émile Borel"
