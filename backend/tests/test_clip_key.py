from shared.models.clip import ContentType, Platform, to_clip_key

from tests.fakes import make_clip


def test_clip_key_is_lowercased_triple():
    clip = make_clip("AbC", platform=Platform.KICK)
    assert to_clip_key(clip) == "kick:clip:abc"


def test_vod_key_includes_positive_timestamp():
    vod = make_clip("12345", content_type=ContentType.VOD, timestamp=630)
    assert to_clip_key(vod) == "twitch:vod:12345:630"


def test_vod_key_ignores_zero_or_missing_timestamp():
    assert to_clip_key(make_clip("1", content_type=ContentType.VOD, timestamp=0)) == "twitch:vod:1"
    assert to_clip_key(make_clip("1", content_type=ContentType.HIGHLIGHT)) == "twitch:highlight:1"


def test_clip_timestamp_is_not_part_of_key():
    assert to_clip_key(make_clip("x", timestamp=30)) == "twitch:clip:x"


def test_same_recording_at_different_offsets_has_distinct_keys():
    a = make_clip("9", content_type=ContentType.VOD, timestamp=10)
    b = make_clip("9", content_type=ContentType.VOD, timestamp=20)
    assert to_clip_key(a) != to_clip_key(b)


def test_with_submitter_merges_without_duplicates():
    clip = make_clip("a", submitters=("alice",))
    merged = clip.with_submitter("bob").with_submitter("alice")
    assert merged.submitters == ("alice", "bob")
    assert clip.submitters == ("alice",)
