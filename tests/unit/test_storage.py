# pylint: disable=missing-module-docstring,missing-function-docstring

from services.storage import SessionStore, StoredSession, VoiceMessageStore, tts_audio_key


def stored(session_id: str, ts: int, **kwargs) -> StoredSession:
    return StoredSession(
        id=session_id,
        user_message=kwargs.pop("user_message", "hello"),
        responses=kwargs.pop("responses", {"accent": "Hello."}),
        timestamp_ms=ts,
        audio_key=kwargs.pop("audio_key", f"audio-{session_id}"),
        **kwargs,
    )


# ---------------------------------------------------------------------
# VoiceMessageStore
# ---------------------------------------------------------------------

def test_voice_messages_are_listed_newest_first():
    store = VoiceMessageStore()
    first = store.create(user_message="one", responses={"accent": "One."})
    second = store.create(user_message="two", responses={"accent": "Two."})

    # Same-millisecond creates still list in reverse creation order
    assert [m.id for m in store.list_messages()] == [second.id, first.id]


def test_voice_message_audio_is_kept_separately():
    store = VoiceMessageStore()
    with_audio = store.create(user_message="a", responses={}, audio=b"wav")
    without = store.create(user_message="b", responses={})

    assert with_audio.has_audio is True
    assert store.get_audio(with_audio.id) == b"wav"
    assert without.has_audio is False
    assert store.get_audio(without.id) is None


def test_voice_message_json_shape():
    store = VoiceMessageStore()
    message = store.create(user_message="hi", responses={"ai": "Hello!"})

    data = message.to_dict()

    assert data == {
        "id": message.id,
        "userMessage": "hi",
        "responses": {"ai": "Hello!"},
        "timestamp": message.timestamp_ms,
        "hasAudio": False,
    }
    assert store.get(message.id) is message
    assert store.get("missing") is None


# ---------------------------------------------------------------------
# SessionStore
# ---------------------------------------------------------------------

def test_sessions_are_replaced_by_id():
    store = SessionStore()
    store.put_session(stored("s1", 10, user_message="first"))
    store.put_session(stored("s1", 20, user_message="edited"))

    assert len(store.list_sessions()) == 1
    assert store.get_session("s1").user_message == "edited"


def test_sessions_list_newest_first():
    store = SessionStore()
    store.put_session(stored("old", 10))
    store.put_session(stored("new", 30))
    store.put_session(stored("mid", 20))

    assert [s.id for s in store.list_sessions()] == ["new", "mid", "old"]


def test_delete_session():
    store = SessionStore()
    store.put_session(stored("s1", 10))

    assert store.delete_session("s1") is True
    assert store.delete_session("s1") is False
    assert store.get_session("s1") is None


def test_session_json_shape():
    session = stored("s1", 10, from_live_mode=True)

    assert session.to_dict() == {
        "id": "s1",
        "userMessage": "hello",
        "responses": {"accent": "Hello."},
        "timestamp": 10,
        "audioKey": "audio-s1",
        "fromLiveMode": True,
    }


def test_tts_audio_is_keyed_by_text_voice_and_speed():
    store = SessionStore()

    key = store.put_tts_audio("Hello there", "nova", 1.0, b"mp3")

    assert key == tts_audio_key("Hello there", "nova", 1.0)
    assert key.startswith("tts-")
    assert store.get_tts_audio("Hello there", "nova", 1.0) == b"mp3"
    assert store.get_tts_audio("Hello there", "alloy", 1.0) is None
    assert store.get_audio(key) == b"mp3"


def test_audio_blobs():
    store = SessionStore()
    store.put_audio("clip-1", b"data")

    assert store.get_audio("clip-1") == b"data"
    assert store.get_audio("clip-2") is None
