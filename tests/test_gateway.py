"""Tests for the view, edit and config flows."""
import json
import threading
from unittest.mock import MagicMock, patch

import pytest

from markbin.database import PasteDatabase
from markbin.errors import OtherError, PasteNotFoundError, StoreError
from markbin.gateway import (
    ConfigForm,
    EditForm,
    Error,
    Gateway,
    PasswordChallenge,
    Viewed,
)
from tests.conftest import MetadataWriteAndCleanupFail, MetadataWriteFails, make_paste


class TestView:
    def test_open_paste_is_rendered(self, store):
        store.save_paste(make_paste(url="abc", content="# Hi"))

        result = Gateway(store, view_password=False).view("abc")

        assert isinstance(result, Viewed)
        assert "<h1>Hi</h1>" in result.rendered
        assert result.title == "abc"
        assert result.views == 1

    def test_title_from_metadata(self, store):
        store.save_paste(make_paste(url="abc", title="My notes"))

        result = Gateway(store, view_password=False).view("abc")

        assert result.title == "My notes"

    def test_each_view_counts_once(self, store):
        store.save_paste(make_paste(url="abc"))
        gateway = Gateway(store, view_password=False)

        counts = [gateway.view("abc").views for _ in range(3)]

        assert counts == [1, 2, 3]

    def test_concurrent_viewers_see_their_own_increment(self, store):
        store.save_paste(make_paste(url="abc"))
        gateway = Gateway(store, view_password=False)
        seen = []

        def view():
            seen.append(gateway.view("abc").views)

        threads = [threading.Thread(target=view) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(v >= 1 for v in seen)
        assert max(seen) == 20
        assert store.get_views_by_url("abc") == 20

    def test_missing_password_is_challenged(self, store, protected):
        renderer = MagicMock()

        result = Gateway(store, view_password=True, renderer=renderer).view("x")

        assert isinstance(result, PasswordChallenge)
        assert result.paste.url == "x"
        renderer.assert_not_called()

    def test_correct_password_views(self, store, protected):
        result = Gateway(store, view_password=True).view("x", "s3cret")

        assert isinstance(result, Viewed)
        assert "<em>secret</em>" in result.rendered
        assert result.views == 1

    def test_wrong_password_is_challenged_not_error(self, store, protected):
        result = Gateway(store, view_password=True).view("x", "wrong")

        assert isinstance(result, PasswordChallenge)

    def test_password_ignored_when_feature_disabled(self, store, protected):
        result = Gateway(store, view_password=False).view("x")

        assert isinstance(result, Viewed)

    def test_lookup_failure_skips_increment(self):
        db = MagicMock()
        db.get_paste_by_url.side_effect = PasteNotFoundError()

        result = Gateway(db, view_password=False).view("nope")

        assert result == Error(message="Paste does not exist")
        db.incr_views_by_url.assert_not_called()

    def test_increment_failure_is_error_before_access_check(self):
        db = MagicMock()
        db.get_paste_by_url.return_value = make_paste(url="abc")
        db.incr_views_by_url.side_effect = StoreError()
        renderer = MagicMock()

        with patch("markbin.gateway.evaluate") as evaluate:
            result = Gateway(db, view_password=False, renderer=renderer).view("abc")

        assert isinstance(result, Error)
        assert result.message == "Paste storage is unavailable"
        evaluate.assert_not_called()
        renderer.assert_not_called()
        db.get_views_by_url.assert_not_called()

    def test_renders_with_no_flags(self, store):
        store.save_paste(make_paste(url="abc", content="text"))
        renderer = MagicMock(return_value="<p>text</p>")

        Gateway(store, view_password=False, renderer=renderer).view("abc")

        renderer.assert_called_once_with("text", [])


class TestEdit:
    def test_returns_raw_source(self, store):
        store.save_paste(make_paste(url="abc", content="# Hi"))

        result = Gateway(store, view_password=False).edit("abc")

        assert isinstance(result, EditForm)
        assert result.paste.content == "# Hi"

    def test_does_not_count_views(self, store):
        store.save_paste(make_paste(url="abc"))

        Gateway(store, view_password=False).edit("abc")

        assert store.get_views_by_url("abc") == 0

    def test_password_is_enforced(self, store, protected):
        gateway = Gateway(store, view_password=True)

        assert isinstance(gateway.edit("x"), PasswordChallenge)
        assert isinstance(gateway.edit("x", "wrong"), PasswordChallenge)
        assert isinstance(gateway.edit("x", "s3cret"), EditForm)

    def test_missing_paste(self, store):
        result = Gateway(store, view_password=False).edit("nope")

        assert result == Error(message="Paste does not exist")


class TestEditConfig:
    def test_metadata_is_serialized(self, store):
        store.save_paste(make_paste(url="abc", title="T"))

        result = Gateway(store, view_password=False).edit_config("abc")

        assert isinstance(result, ConfigForm)
        assert json.loads(result.metadata) == {"title": "T", "view_password": ""}

    def test_password_is_enforced(self, store, protected):
        gateway = Gateway(store, view_password=True)

        assert isinstance(gateway.edit_config("x"), PasswordChallenge)
        assert isinstance(gateway.edit_config("x", "s3cret"), ConfigForm)
        assert store.get_views_by_url("x") == 0

    def test_serialization_failure_is_generic_error(self):
        paste = MagicMock()
        paste.url = "abc"
        paste.metadata.model_dump_json.side_effect = ValueError("boom")
        db = MagicMock()
        db.get_paste_by_url.return_value = paste

        result = Gateway(db, view_password=False).edit_config("abc")

        assert result == Error(message=str(OtherError()))

    def test_store_failure(self):
        db = MagicMock()
        db.get_paste_by_url.side_effect = StoreError()

        result = Gateway(db, view_password=False).edit_config("abc")

        assert result == Error(message="Paste storage is unavailable")


def test_render_is_stateless():
    db = MagicMock()
    gateway = Gateway(db, view_password=True)

    first = gateway.render("**bold**")

    assert "<strong>bold</strong>" in first
    assert gateway.render("**bold**") == first
    assert db.method_calls == []


@pytest.mark.parametrize("backend", [MetadataWriteFails, MetadataWriteAndCleanupFail])
def test_half_saved_protected_paste_is_never_shown(backend):
    store = PasteDatabase(client=backend())
    with pytest.raises(StoreError):
        store.save_paste(make_paste(url="x", content="secret", view_password="s3cret"))

    result = Gateway(store, view_password=True).view("x")

    assert isinstance(result, Error)
