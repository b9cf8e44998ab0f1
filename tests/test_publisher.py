from __future__ import annotations

import asyncio

import pytest

from core.captions import FOOTER_PREFIX, append_footer, build_footer
from core.config import FooterConfig
from core.models import AlbumItem, MediaRef, PostItem, PostKind, SourceMeta
from core.publisher import Publisher


class FakeSender:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple] = []
        self._fail = fail

    async def _record(self, *call):
        if self._fail:
            raise ConnectionError("flood wait")
        self.calls.append(call)
        return {"message_id": len(self.calls)}

    async def send_text(self, text):
        return await self._record("text", text)

    async def send_photo(self, media, caption):
        return await self._record("photo", media, caption)

    async def send_video(self, media, caption):
        return await self._record("video", media, caption)

    async def send_animation(self, media, caption):
        return await self._record("animation", media, caption)

    async def send_media_group(self, items):
        return await self._record("group", list(items))


SOURCE = SourceMeta(title="Daily News", username="daily_news")
FOOTER = f"{FOOTER_PREFIX}@daily_news"


def test_text_goes_out_verbatim_without_footer() -> None:
    sender = FakeSender()
    publisher = Publisher(sender, FooterConfig())
    body = "*not bold* _nor italic_ [link](x)"

    outcome = asyncio.run(publisher.publish(PostItem(source=SOURCE, kind=PostKind.TEXT, text=body)))

    assert outcome.ok
    assert sender.calls == [("text", body)]


def test_single_media_gets_footer() -> None:
    sender = FakeSender()
    publisher = Publisher(sender, FooterConfig())
    media = MediaRef(file_id="AgAD")

    async def scenario() -> None:
        await publisher.publish(PostItem(source=SOURCE, kind=PostKind.PHOTO, text="Hello", media=media))
        await publisher.publish(PostItem(source=SOURCE, kind=PostKind.VIDEO, media=media))
        await publisher.publish(PostItem(source=SOURCE, kind=PostKind.ANIMATION, text="gif", media=media))

    asyncio.run(scenario())

    assert sender.calls == [
        ("photo", media, f"Hello{FOOTER}"),
        ("video", media, FOOTER),
        ("animation", media, f"gif{FOOTER}"),
    ]


def test_album_footer_on_first_caption_and_unknown_kind_as_photo() -> None:
    sender = FakeSender()
    publisher = Publisher(sender, FooterConfig())
    album = (
        AlbumItem(kind="photo", media=MediaRef(file_id="a"), caption="cover"),
        AlbumItem(kind="animation", media=MediaRef(file_id="b"), caption="second"),
        AlbumItem(kind="video", media=MediaRef(file_id="c")),
    )

    asyncio.run(publisher.publish(PostItem(source=SOURCE, kind=PostKind.ALBUM, text="cover", album=album)))

    (name, group), = sender.calls
    assert name == "group"
    assert [kind for kind, _, _ in group] == ["photo", "photo", "video"]
    assert [caption for _, _, caption in group] == [f"cover{FOOTER}", "second", None]


def test_transport_errors_propagate() -> None:
    publisher = Publisher(FakeSender(fail=True), FooterConfig())

    with pytest.raises(ConnectionError):
        asyncio.run(publisher.publish(PostItem(source=SOURCE, kind=PostKind.TEXT, text="hi")))


def test_footer_disabled_and_override() -> None:
    sender = FakeSender()
    media = MediaRef(file_id="x")
    item = PostItem(source=SOURCE, kind=PostKind.PHOTO, text="Hi", media=media)

    asyncio.run(Publisher(sender, FooterConfig(enabled=False)).publish(item))
    asyncio.run(Publisher(sender, FooterConfig(handle_override="@mine")).publish(item))

    assert sender.calls[0][2] == "Hi"
    assert sender.calls[1][2] == f"Hi{FOOTER_PREFIX}@mine"


def test_footer_uses_title_and_is_dropped_when_too_long() -> None:
    assert build_footer(SourceMeta(title="Crypto Talk"), FooterConfig()) == f"{FOOTER_PREFIX}Crypto Talk"
    assert build_footer(SourceMeta(), FooterConfig()) == ""

    long_caption = "x" * 1020
    assert append_footer(long_caption, FOOTER) == long_caption
    assert append_footer("short", FOOTER) == f"short{FOOTER}"


def test_album_footer_follows_the_captioned_fragment() -> None:
    sender = FakeSender()
    publisher = Publisher(sender, FooterConfig())
    feed = SourceMeta(username="feed")
    album = (
        AlbumItem(kind="photo", media=MediaRef(file_id="a")),
        AlbumItem(kind="photo", media=MediaRef(file_id="b"), caption="Breaking news"),
    )

    asyncio.run(publisher.publish(PostItem(source=feed, kind=PostKind.ALBUM, album=album)))

    (_, group), = sender.calls
    assert [caption for _, _, caption in group] == [None, f"Breaking news{FOOTER_PREFIX}@feed"]


def test_album_without_captions_puts_footer_first() -> None:
    sender = FakeSender()
    publisher = Publisher(sender, FooterConfig())
    album = (
        AlbumItem(kind="photo", media=MediaRef(file_id="a")),
        AlbumItem(kind="video", media=MediaRef(file_id="b")),
    )

    asyncio.run(publisher.publish(PostItem(source=SOURCE, kind=PostKind.ALBUM, album=album)))

    (_, group), = sender.calls
    assert [caption for _, _, caption in group] == [FOOTER, None]
