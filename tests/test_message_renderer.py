"""
Tests for message rendering, link lookup and link activation.
"""

import email
from email.message import EmailMessage

import pytest

from mailview.client.services.message_renderer import (
    HEADER_TAG,
    HEADER_TITLE_TAG,
    LINK_TAG,
    ActivationResult,
    LinkActivator,
    MessageRenderer,
    TextDocument,
    get_quote_level,
    load_message,
    quote_tag,
    trim_uri,
)
from mailview.client.services.uri_trust import ConfirmResponse
from mailview.common.config import ViewerSettings
from mailview.common.exceptions import InvalidMessageError


class TestQuoteLevel:
    @pytest.mark.parametrize(
        "line,level",
        [
            ("> reply", 0),
            (">> older", 1),
            ("> > spaced", 1),
            ("foo> named", 0),
            ("_> underscore", 0),
            ("> text -> arrow", 0),
            ("<foo> tag", -1),
            ("foo bar> words", -1),
            ("foo-> arrow", -1),
            ("a > b", -1),
            ("no quote", -1),
        ],
    )
    def test_levels(self, line, level):
        assert get_quote_level(line) == level

    def test_quote_tags(self):
        assert quote_tag(-1) is None
        assert quote_tag(0) == "quote0"
        assert quote_tag(2) == "quote2"
        assert quote_tag(5) == "quote2"

    def test_recycled_quote_tags(self):
        assert quote_tag(3, recycle=True) == "quote0"
        assert quote_tag(4, recycle=True) == "quote1"


class TestTrimUri:
    def test_short_uri_unchanged(self):
        assert trim_uri("http://example.com/") == "http://example.com/"

    def test_long_uri_trimmed(self):
        uri = "http://example.com/" + "a" * 60
        assert trim_uri(uri) == uri[:60] + "..."
        assert trim_uri(uri, 20) == uri[:20] + "..."


class TestTextDocument:
    def test_insert_offsets(self):
        doc = TextDocument()
        assert doc.insert("Hello ") == (0, 6)
        assert doc.insert("world", "bold") == (6, 11)
        assert doc.text == "Hello world"
        assert doc.tags_at(7) == ("bold",)
        assert doc.tags_at(0) == ()

    def test_empty_insert_adds_no_run(self):
        doc = TextDocument()
        doc.insert("abc")
        assert doc.insert("", "bold") == (3, 3)
        assert len(doc.runs) == 1

    def test_none_tags_dropped(self):
        doc = TextDocument()
        doc.insert("abc", None, "link", None)
        assert doc.tags_at(1) == ("link",)

    def test_tag_range_merges_adjacent_runs(self):
        doc = TextDocument()
        doc.insert("see ")
        doc.insert("http://a.example/", LINK_TAG)
        doc.insert("http://b.example/", LINK_TAG, "quote0")
        doc.insert(" end")
        assert doc.tag_range_at(10, LINK_TAG) == (4, 38)
        assert doc.tag_range_at(30, LINK_TAG) == (4, 38)
        assert doc.tag_range_at(1, LINK_TAG) is None
        assert doc.tag_range_at(39, LINK_TAG) is None

    def test_find(self):
        doc = TextDocument()
        doc.insert("One two ONE")
        assert doc.find("one") == 0
        assert doc.find("one", 1) == 8
        assert doc.find("one", 1, case_sensitive=True) is None
        assert doc.find("") is None

    def test_rfind(self):
        doc = TextDocument()
        doc.insert("One two ONE")
        assert doc.rfind("one") == 8
        assert doc.rfind("one", 8) == 0
        assert doc.rfind("one", 9) == 8
        assert doc.rfind("ONE", 8, case_sensitive=True) is None
        assert doc.rfind("one", 0) is None
        assert doc.rfind("") is None

    def test_clear(self):
        doc = TextDocument()
        doc.insert("abc", "x")
        doc.clear()
        assert doc.text == ""
        assert doc.length == 0
        assert doc.runs == []


class TestWriting:
    def test_write_line_registers_link(self, renderer):
        renderer.write_line("Visit http://example.com/path, thanks.\n")
        assert [(l.uri, l.start, l.end) for l in renderer.links] == [
            ("http://example.com/path", 6, 29),
        ]
        assert renderer.document.tags_at(6) == (LINK_TAG,)
        assert renderer.document.tags_at(29) == ()

    def test_quoted_line_coloured(self, renderer):
        renderer.write_line("> see http://example.com/\n")
        assert renderer.document.tags_at(0) == ("quote0",)
        assert renderer.document.tags_at(6) == (LINK_TAG, "quote0")

    def test_offsets_follow_earlier_text(self, renderer):
        renderer.write_text("first line\nmail joe@example.com\n")
        link = renderer.links[0]
        assert link.uri == "mailto:joe@example.com"
        assert renderer.visible_text(link) == "joe@example.com"
        assert link.start == len("first line\nmail ")

    def test_crlf_normalised(self, renderer):
        renderer.write_line("text\r\n")
        assert renderer.document.text == "text\n"

    def test_uncoloured_links_still_registered(self):
        renderer = MessageRenderer(ViewerSettings(enable_color=False))
        renderer.write_line("> http://example.com/x\n")
        assert renderer.document.tags_at(3) == ()
        assert renderer.link_at(3).uri == "http://example.com/x"

    def test_write_link_skips_leading_whitespace(self, renderer):
        link = renderer.write_link("  http://bank.example/", "http://evil.example/")
        assert (link.start, link.end) == (2, 22)
        assert renderer.visible_text(link) == "http://bank.example/"
        assert renderer.document.tags_at(0) == ()
        assert renderer.link_at(1) is None

    def test_write_link_blank(self, renderer):
        assert renderer.write_link("   ", "http://example.com/") is None
        assert renderer.write_link("", "http://example.com/") is None
        assert renderer.links == []
        assert renderer.document.text == "   "

    def test_uncoloured_anchor_untagged(self):
        renderer = MessageRenderer(ViewerSettings(enable_color=False))
        link = renderer.write_link("http://bank.example/", "http://evil.example/")
        assert renderer.document.tags_at(0) == ()
        assert renderer.link_at(0) == link


class TestRenderMessage:
    def test_headers(self, renderer, sample_message):
        renderer.render_message(sample_message)
        text = renderer.document.text
        assert text.startswith(
            "Date: Mon, 13 Jan 2026 14:30:00 +0000\n"
            "From: Alice <alice@example.com>\n"
            "To: bob@example.org\n"
            "Subject: Quarterly report\n"
            "\n"
        )
        assert "X-Mailer" not in text
        assert renderer.document.tags_at(0) == (HEADER_TITLE_TAG, HEADER_TAG)

    def test_body_position(self, renderer, sample_message):
        renderer.render_message(sample_message)
        body = renderer.document.text[renderer.body_pos:]
        assert body.startswith("Hi Bob,\n")

    def test_links_in_order(self, renderer, sample_message):
        renderer.render_message(sample_message)
        assert [link.uri for link in renderer.links] == [
            "mailto:alice@example.com",
            "mailto:bob@example.org",
            "http://example.com/report",
            "www.example.net",
            "http://evil.example/login",
        ]

    def test_first_alternative_only(self, renderer, alternative_message):
        renderer.render_message(alternative_message)
        assert renderer.document.text == (
            "Subject: Both versions\n"
            "\n"
            "plain body http://a.example/x\n"
        )
        assert [link.uri for link in renderer.links] == ["http://a.example/x"]

    def test_attached_message_shows_headers(self, renderer):
        inner = EmailMessage()
        inner["From"] = "carol@example.com"
        inner["Subject"] = "Inner"
        inner["X-Mailer"] = "TestMailer 1.0"
        inner.set_content("inner body http://inner.example/\n")

        outer = EmailMessage()
        outer["Subject"] = "Fwd"
        outer.set_content("see below\n")
        outer.add_attachment(inner)

        renderer.render_message(email.message_from_bytes(bytes(outer)))
        assert renderer.document.text == (
            "Subject: Fwd\n"
            "\n"
            "see below\n"
            "\n"
            "From: carol@example.com\n"
            "Subject: Inner\n"
            "\n"
            "inner body http://inner.example/\n"
        )
        assert [link.uri for link in renderer.links] == [
            "mailto:carol@example.com",
            "http://inner.example/",
        ]

    def test_html_anchor_shows_text(self, renderer, sample_message):
        renderer.render_message(sample_message)
        link = renderer.links[-1]
        assert renderer.visible_text(link) == "http://bank.example/login"
        assert "Log in at http://bank.example/login.\n" in renderer.document.text

    def test_render_replaces_document(self, renderer, sample_message):
        renderer.render_message(sample_message)
        first = renderer.document.text
        renderer.render_message(sample_message)
        assert renderer.document.text == first
        assert len(renderer.links) == 5

    def test_link_at(self, renderer, sample_message):
        renderer.render_message(sample_message)
        for link in renderer.links:
            assert renderer.link_at(link.start) == link
            assert renderer.link_at(link.end - 1) == link
        assert renderer.link_at(0) is None
        assert renderer.link_at(renderer.body_pos) is None

    def test_attachment_placeholder(self, renderer):
        msg = EmailMessage()
        msg["Subject"] = "Files"
        msg.set_content("body\n")
        msg.add_attachment(
            b"\x00\x01\x02",
            maintype="application",
            subtype="octet-stream",
            filename="data.bin",
        )
        renderer.render_message(msg)
        assert renderer.document.text.endswith(
            "body\n[data.bin (application/octet-stream, 3 bytes)]\n"
        )

    def test_unknown_charset(self, renderer):
        msg = email.message_from_bytes(
            b"Content-Type: text/plain; charset=x-unknown\n\nhello\n"
        )
        renderer.render_message(msg)
        assert renderer.document.text == "hello\n"

    def test_forced_charset(self):
        renderer = MessageRenderer(ViewerSettings(force_charset="latin-1"))
        msg = email.message_from_bytes(
            b"Content-Type: text/plain; charset=utf-8\n"
            b"Content-Transfer-Encoding: 8bit\n\n"
            b"caf\xc3\xa9\n"
        )
        renderer.render_message(msg)
        assert renderer.document.text == "caf\xc3\xa9\n"

    def test_search(self, renderer, sample_message):
        renderer.render_message(sample_message)
        pos = renderer.search("quarterly")
        assert renderer.document.get_text(pos, pos + 9) == "Quarterly"
        assert renderer.search("quarterly", pos + 1) is None

    def test_search_backward(self, renderer, sample_message):
        renderer.render_message(sample_message)
        last = renderer.search_backward("example")
        assert renderer.document.get_text(last, last + 7) == "example"
        assert renderer.search("example", last + 1) is None
        assert renderer.search_backward("example", last) < last
        assert renderer.search_backward("quarterly", 0) is None


class TestLoadMessage:
    def test_load(self, eml_file):
        msg = load_message(eml_file)
        assert msg["Subject"] == "Quarterly report"

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidMessageError):
            load_message(tmp_path / "missing.eml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.eml"
        path.write_bytes(b"\n")
        with pytest.raises(InvalidMessageError) as exc_info:
            load_message(path)
        assert "empty" in str(exc_info.value)


class TestLinkActivator:
    @pytest.fixture
    def opened(self):
        return []

    @pytest.fixture
    def rendered(self, renderer, sample_message):
        renderer.render_message(sample_message)
        return renderer

    def link(self, renderer, uri):
        return next(link for link in renderer.links if link.uri == uri)

    def opener(self, opened, result=True):
        def fake_open(uri):
            opened.append(uri)
            return result

        return fake_open

    def test_no_link(self, rendered, opened):
        activator = LinkActivator(rendered, opener=self.opener(opened))
        assert activator.activate_at(0) is ActivationResult.NO_LINK
        assert opened == []

    def test_trusted_link_opened(self, rendered, opened):
        activator = LinkActivator(rendered, opener=self.opener(opened))
        link = self.link(rendered, "http://example.com/report")
        assert activator.activate_at(link.start + 3) is ActivationResult.OPENED
        assert opened == ["http://example.com/report"]

    def test_open_failure(self, rendered, opened):
        activator = LinkActivator(rendered, opener=self.opener(opened, False))
        link = self.link(rendered, "www.example.net")
        assert activator.activate(link) is ActivationResult.FAILED

    def test_mailto_composes(self, rendered, opened):
        composed = []
        activator = LinkActivator(
            rendered, opener=self.opener(opened), compose=composed.append
        )
        link = self.link(rendered, "mailto:alice@example.com")
        assert activator.activate(link) is ActivationResult.COMPOSED
        assert composed == ["alice@example.com"]
        assert opened == []

    def test_mailto_without_composer(self, rendered, opened):
        activator = LinkActivator(rendered, opener=self.opener(opened))
        link = self.link(rendered, "mailto:bob@example.org")
        assert activator.activate(link) is ActivationResult.REFUSED
        assert opened == []

    def test_spoofed_link_refused_without_prompt(self, rendered, opened):
        activator = LinkActivator(rendered, opener=self.opener(opened))
        link = self.link(rendered, "http://evil.example/login")
        assert activator.activate(link) is ActivationResult.REFUSED
        assert opened == []

    def test_spoofed_link_confirmed(self, rendered, opened):
        prompts = []
        activator = LinkActivator(
            rendered,
            opener=self.opener(opened),
            confirm=lambda verdict, respond: prompts.append((verdict, respond)),
        )
        link = self.link(rendered, "http://evil.example/login")

        assert activator.activate(link) is ActivationResult.CONFIRMING
        verdict, respond = prompts[0]
        assert not verdict.trusted
        assert verdict.visible_text == "http://bank.example/login"
        assert opened == []

        respond(ConfirmResponse.YES)
        assert opened == ["http://evil.example/login"]

    @pytest.mark.parametrize("response", [ConfirmResponse.NO, "no", "close", None])
    def test_spoofed_link_declined(self, rendered, opened, response):
        activator = LinkActivator(
            rendered,
            opener=self.opener(opened),
            confirm=lambda verdict, respond: respond(response),
        )
        link = self.link(rendered, "http://evil.example/login")
        assert activator.activate(link) is ActivationResult.CONFIRMING
        assert opened == []

    def test_default_opener_uses_command(self, monkeypatch):
        from mailview.client.services import uri_opener

        calls = []
        monkeypatch.setattr(uri_opener.subprocess, "Popen", calls.append)
        renderer = MessageRenderer(ViewerSettings(uri_command="browser %s"))
        renderer.write_line("http://example.com/\n")

        activator = LinkActivator(renderer)
        assert activator.activate_at(0) is ActivationResult.OPENED
        assert calls == [["browser", "http://example.com/"]]
