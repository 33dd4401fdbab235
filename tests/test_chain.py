# tests/test_chain.py
import base64
import hashlib
import logging

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ssb_publish import (
    Contact,
    Feed,
    InvalidPreviousMessage,
    InvalidPublicKey,
    InvalidSecretKey,
    LegacyJsonEncodeFailed,
    Multihash,
    Multikey,
    OutputShape,
    PreviousMessageAuthorIsIncorrect,
    PublishConfig,
    SigningStrategy,
    publish,
)
from ssb_publish.chain.previous import resolve_previous
from ssb_publish.chain.publish import link_message
from ssb_publish.core.canon import from_legacy_json, to_legacy_json

from feed_helpers import (
    keypair_from_seed,
    legacy_key,
    message_value,
    validate_message_value_hash_chain,
    verify_message_value,
)

FRIEND = "@9Zf0se86PotjNqaOt9ue8BNBLkGVLQcLNDw/pRQHY3U=.ed25519"


@pytest.fixture
def alice():
    return keypair_from_seed(bytes(range(32)))


@pytest.fixture
def bob():
    return keypair_from_seed(bytes(range(100, 132)))


def contact(following: bool) -> Contact:
    return Contact(contact=Multikey.from_legacy(FRIEND), following=following, blocking=False)


def test_first_message(alice):
    public, secret = alice
    data, key = publish({"type": "post", "text": "hello"}, None, public, secret, 0.0)

    value = from_legacy_json(data)
    assert value["sequence"] == 1
    assert value["previous"] is None
    assert value["author"] == str(Multikey.from_ed25519(public))
    assert value["timestamp"] == 0
    assert value["hash"] == "sha256"
    assert list(value) == ["previous", "author", "sequence", "timestamp", "hash", "content", "signature"]
    assert data.startswith(b'{\n  "previous": null,\n  "author": "@')
    assert isinstance(key, Multihash)


def test_chain_links_keys(alice):
    public, secret = alice
    first, first_key = publish({"type": "post", "text": "one"}, None, public, secret, 1.0)
    second, second_key = publish({"type": "post", "text": "two"}, first, public, secret, 2.0)

    value = from_legacy_json(second)
    assert value["sequence"] == 2
    assert value["previous"] == str(first_key)
    assert second_key != first_key


def test_author_continuity(alice, bob):
    first, _ = publish({"type": "post", "text": "alice"}, None, *alice, 0.0)
    with pytest.raises(PreviousMessageAuthorIsIncorrect):
        publish({"type": "post", "text": "bob"}, first, *bob, 1.0)


def test_signature_verifies(alice):
    public, secret = alice
    first, _ = publish({"type": "post", "text": "signed"}, None, public, secret, 0.0)
    assert verify_message_value(first)

    tampered = first.replace(b"signed", b"forged")
    assert not verify_message_value(tampered)


def test_key_matches_recomputed_identifier(alice):
    public, secret = alice
    data, key = publish({"type": "post", "text": "naïve ☕ 😀"}, None, public, secret, 0.0)
    assert str(key) == legacy_key(data)
    # not the UTF-8 hash
    assert key.digest != hashlib.sha256(data).digest()


def test_deterministic(alice):
    public, secret = alice
    content = {"type": "post", "text": "same"}
    assert publish(content, None, public, secret, 5.0) == publish(content, None, public, secret, 5.0)


@pytest.mark.parametrize("previous", [
    b'{"previous": null, "author": "@abc',            # truncated
    b"[1, 2, 3]",
    b'{"previous": null, "sequence": 1, "timestamp": 0}',   # no author
    b'{"previous": null, "author": "@9Zf0se86PotjNqaOt9ue8BNBLkGVLQcLNDw/pRQHY3U=.ed25519", '
    b'"sequence": 0, "timestamp": 0}',
    b'{"previous": null, "author": "@9Zf0se86PotjNqaOt9ue8BNBLkGVLQcLNDw/pRQHY3U=.ed25519", '
    b'"sequence": "1", "timestamp": 0}',
    b'{"previous": "nope", "author": "@9Zf0se86PotjNqaOt9ue8BNBLkGVLQcLNDw/pRQHY3U=.ed25519", '
    b'"sequence": 1, "timestamp": 0}',
    b'\xff\xfe',
])
def test_malformed_previous(alice, previous):
    with pytest.raises(InvalidPreviousMessage) as exc:
        publish({"type": "post"}, previous, *alice, 0.0)
    assert exc.value.message_bytes == previous


def test_contact_scenario(alice):
    public, secret = alice
    msg1, key1 = publish(contact(True), None, public, secret, 0.0)
    value1 = from_legacy_json(msg1)
    assert value1["sequence"] == 1
    assert value1["previous"] is None
    assert value1["content"] == {"type": "contact", "contact": FRIEND, "following": True, "blocking": False}

    msg2, key2 = publish(contact(False), msg1, public, secret, 0.0)
    value2 = from_legacy_json(msg2)
    assert value2["sequence"] == 2
    assert value2["previous"] == str(key1)
    assert value2["content"]["following"] is False

    assert validate_message_value_hash_chain(msg1)
    assert validate_message_value_hash_chain(msg2, msg1)
    assert verify_message_value(msg1)
    assert verify_message_value(msg2)
    assert value1["author"] == value2["author"]


@pytest.mark.parametrize("timestamp", [float("nan"), float("inf"), -float("inf"), True, "0", 10**400])
def test_unrepresentable_timestamp(alice, timestamp):
    with pytest.raises(LegacyJsonEncodeFailed):
        publish({"type": "post"}, None, *alice, timestamp)


def test_negative_and_integer_timestamps(alice):
    data, _ = publish({"type": "post"}, None, *alice, -1.5)
    assert b'"timestamp": -1.5,' in data
    data, _ = publish({"type": "post"}, None, *alice, 1514517078157)
    assert b'"timestamp": 1514517078157,' in data


def test_unencodable_content(alice):
    with pytest.raises(LegacyJsonEncodeFailed):
        publish({"type": "post", "tags": {"a", "b"}}, None, *alice, 0.0)


def test_encrypted_content(alice):
    box = "c2VjcmV0IHN0dWZm.box"
    data, _ = publish(box, None, *alice, 0.0)
    assert from_legacy_json(data)["content"] == box
    assert verify_message_value(data)


def test_invalid_keys(alice, bob):
    public, secret = alice
    with pytest.raises(InvalidPublicKey):
        publish({"type": "post"}, None, public[:16], secret, 0.0)
    with pytest.raises(InvalidSecretKey):
        publish({"type": "post"}, None, public, secret[:10], 0.0)
    with pytest.raises(InvalidSecretKey):
        publish({"type": "post"}, None, public, bob[1], 0.0)


def test_keys_checked_before_previous(alice):
    public, secret = alice
    with pytest.raises(InvalidSecretKey):
        publish({"type": "post"}, b"not json", public, b"short", 0.0)


def test_zeroed_signature_strategy(alice):
    public, secret = alice
    config = PublishConfig(signing_strategy=SigningStrategy.ZEROED_SIGNATURE)
    data, key = publish({"type": "post", "text": "zeroed"}, None, public, secret, 0.0, config=config)

    assert verify_message_value(data, zeroed=True)
    assert not verify_message_value(data)
    assert str(key) == legacy_key(data)

    legacy, legacy_key_ = publish({"type": "post", "text": "zeroed"}, None, public, secret, 0.0)
    assert legacy != data
    assert legacy_key_ != key


def test_wrapped_output(alice):
    public, secret = alice
    config = PublishConfig(output_shape=OutputShape.WRAPPED)
    assert config.emit_wrapped
    data, key = publish({"type": "post", "text": "wrapped"}, None, public, secret, 0.0, config=config)

    wrapped = from_legacy_json(data)
    assert list(wrapped) == ["key", "value"]
    assert wrapped["key"] == str(key)
    assert legacy_key(to_legacy_json(wrapped["value"])) == str(key)

    plain, plain_key = publish({"type": "post", "text": "wrapped"}, None, public, secret, 0.0)
    assert plain_key == key
    assert message_value(data) == from_legacy_json(plain)


def test_wrapped_previous_chains(alice):
    public, secret = alice
    config = PublishConfig(output_shape=OutputShape.WRAPPED)
    first, first_key = publish({"type": "post", "text": "one"}, None, public, secret, 0.0, config=config)
    second, _ = publish({"type": "post", "text": "two"}, first, public, secret, 1.0, config=config)

    value = message_value(second)
    assert value["sequence"] == 2
    assert value["previous"] == str(first_key)
    assert validate_message_value_hash_chain(second, first)


def test_wrapped_previous_with_wrong_key(alice):
    public, secret = alice
    config = PublishConfig(output_shape=OutputShape.WRAPPED)
    first, _ = publish({"type": "post", "text": "one"}, None, public, secret, 0.0, config=config)
    other, other_key = publish({"type": "post", "text": "other"}, None, public, secret, 0.0)

    wrapped = from_legacy_json(first)
    wrapped["key"] = str(other_key)
    with pytest.raises(InvalidPreviousMessage):
        publish({"type": "post"}, to_legacy_json(wrapped), public, secret, 1.0)


def test_resolve_previous_view(alice):
    public, secret = alice
    first, key = publish({"type": "post"}, None, public, secret, 42.0)
    assert resolve_previous(None) is None

    view = resolve_previous(first)
    assert view.key == key
    assert view.sequence == 1
    assert view.timestamp == 42.0
    assert view.author == Multikey.from_ed25519(public)


def test_link_message_without_previous(alice):
    author = Multikey.from_ed25519(alice[0])
    message = link_message(None, author, {"type": "post"}, 3)
    assert message.sequence == 1
    assert message.previous is None
    assert message.timestamp == 3.0
    assert message.signature is None


def test_feed_appends_and_chains(alice):
    public, secret = alice
    feed = Feed()
    assert feed.length == 0
    assert feed.last_key() is None

    first = feed.append(contact(True), public, secret, 0.0)
    second = feed.append(contact(False), public, secret, 1.0)

    chain = feed.get_chain()
    assert len(chain) == 2
    assert chain[0] == first
    assert feed.last_key() == second.key
    assert from_legacy_json(second.data)["previous"] == str(first.key)
    assert validate_message_value_hash_chain(second.data, first.data)


def test_feed_refuses_other_author(alice, bob):
    feed = Feed()
    feed.append({"type": "post"}, *alice, 0.0)
    with pytest.raises(PreviousMessageAuthorIsIncorrect):
        feed.append({"type": "post"}, *bob, 1.0)
    assert feed.length == 1


def test_wrapped_feed(alice):
    feed = Feed(config=PublishConfig(output_shape=OutputShape.WRAPPED))
    feed.append({"type": "post", "text": "a"}, *alice, 0.0)
    last = feed.append({"type": "post", "text": "b"}, *alice, 1.0)
    assert message_value(last.data)["sequence"] == 2
    assert verify_message_value(last.data)


def test_publish_logs_at_debug(alice, caplog):
    with caplog.at_level(logging.DEBUG, logger="ssb_publish"):
        _, key = publish({"type": "post"}, None, *alice, 0.0)
    assert "Published sequence 1" in caplog.text
    assert str(key) in caplog.text


def test_contact_message_known_bytes(alice):
    # Expected bytes are spelled out by hand, not produced by the encoder.
    seed = bytes(range(32))
    public, secret = alice
    author = "@" + base64.b64encode(public).decode("ascii") + ".ed25519"
    signable = (
        '{\n'
        '  "previous": null,\n'
        f'  "author": "{author}",\n'
        '  "sequence": 1,\n'
        '  "timestamp": 0,\n'
        '  "hash": "sha256",\n'
        '  "content": {\n'
        '    "type": "contact",\n'
        f'    "contact": "{FRIEND}",\n'
        '    "following": true,\n'
        '    "blocking": false\n'
        '  }\n'
        '}'
    ).encode("ascii")
    signature = Ed25519PrivateKey.from_private_bytes(seed).sign(signable)
    expected = (
        signable[:-2]
        + b',\n  "signature": "'
        + base64.b64encode(signature)
        + b'.sig.ed25519"\n}'
    )

    data, key = publish(contact(True), None, public, secret, 0.0)
    assert data == expected
    assert str(key) == "%" + base64.b64encode(hashlib.sha256(expected).digest()).decode("ascii") + ".sha256"


def test_non_ascii_message_known_bytes(alice):
    public, secret = alice
    author = "@" + base64.b64encode(public).decode("ascii") + ".ed25519"
    signable = (
        '{\n'
        '  "previous": null,\n'
        f'  "author": "{author}",\n'
        '  "sequence": 1,\n'
        '  "timestamp": 1514517078157.5,\n'
        '  "hash": "sha256",\n'
        '  "content": {\n'
        '    "type": "post",\n'
        '    "text": "café \\"quoted\\"\\n",\n'
        '    "tags": []\n'
        '  }\n'
        '}'
    )
    signature = Ed25519PrivateKey.from_private_bytes(bytes(range(32))).sign(signable.encode("utf-8"))
    expected = (
        signable[:-2]
        + ',\n  "signature": "'
        + base64.b64encode(signature).decode("ascii")
        + '.sig.ed25519"\n}'
    )

    content = {"type": "post", "text": 'café "quoted"\n', "tags": []}
    data, key = publish(content, None, public, secret, 1514517078157.5)
    assert data == expected.encode("utf-8")
    # every code unit here is below 256, so node's "binary" bytes equal latin-1
    digest = hashlib.sha256(expected.encode("latin-1")).digest()
    assert str(key) == "%" + base64.b64encode(digest).decode("ascii") + ".sha256"
