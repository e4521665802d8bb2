"""Tests for sift.core.extractor module."""

from unittest.mock import patch

from sift.core.extractor import ContentExtractor, extract_content, visible_text
from sift.core.models import ExtractionFailure, ExtractionResult, NewsletterSource, SectionType

SOURCE = NewsletterSource(name="Test Co")


class TestExtractContent:
    def test_weekly_digest(self) -> None:
        result = extract_content(
            "<h1>Weekly Digest</h1><p>Markets rose 3% today on strong earnings.</p>", SOURCE
        )
        assert isinstance(result, ExtractionResult)
        assert result.success is True
        assert [section.type for section in result.sections] == [
            SectionType.HEADING, SectionType.DATA_HIGHLIGHT,
        ]
        assert result.sections[0].title == "Weekly Digest"
        assert "Markets rose 3%" in result.sections[1].content
        assert result.word_count == 9
        assert result.extraction_confidence == 0.7
        assert result.metadata.title == "Weekly Digest"
        assert result.tags == ["business"]

    def test_loose_footer_text_does_not_erase_content(self) -> None:
        result = extract_content(
            "<html><body><h1>Big Weekly Story</h1><p>Long paragraph with real content here.</p>"
            "To unsubscribe <a href='https://example.com/u'>click here</a></body></html>",
            SOURCE,
        )
        assert result.success is True
        assert result.metadata.title == "Big Weekly Story"
        assert [section.type for section in result.sections][:2] == [
            SectionType.HEADING, SectionType.TEXT_BLOCK,
        ]
        assert "unsubscribe" not in result.search_text

    def test_empty_string(self) -> None:
        result = extract_content("", SOURCE)
        assert isinstance(result.success, bool)
        sections = result.sections if result.success else result.fallback.sections
        assert isinstance(sections, list)
        assert result.to_dict()["success"] is result.success

    def test_none_html(self) -> None:
        result = extract_content(None, SOURCE)
        assert result.success is True
        assert result.sections == []
        assert result.metadata.title == "Test Co Newsletter"

    def test_full_newsletter(self) -> None:
        html = """
        <html><head><title>Acme Weekly #12</title>
        <style>.brand{color:#ff6600} .bg{background-color:#003366}</style></head>
        <body>
          <div class="header"><a href="https://acme.test">Acme</a></div>
          <h1>This week in software</h1>
          <p>A new framework shipped. <a href="https://example.com/post">Read more</a></p>
          <img src="//cdn.acme.test/chart.png" alt="Growth chart" width="600">
          <p><a href="/relative">A relative link that is dropped</a></p>
          <div class="footer"><a href="https://acme.test/unsubscribe">Unsubscribe</a></div>
        </body></html>
        """
        result = ContentExtractor().extract(html, NewsletterSource(name="Acme", website="https://acme.test"))

        assert result.success is True
        assert result.metadata.title == "Acme Weekly #12"
        assert result.metadata.brand_colors.to_dict() == {"primary": "#ff6600", "accent": "#003366"}
        assert result.extraction_confidence == 1.0
        assert [section.order for section in result.sections] == list(range(1, len(result.sections) + 1))
        for section in result.sections:
            for link in section.links:
                assert link.href.startswith(("http://", "https://"))
            for image in section.images:
                assert image.src.startswith(("http://", "https://"))
        assert "unsubscribe" not in result.search_text
        assert "tech" in result.tags

        data = result.to_dict()
        assert set(data) == {
            "success", "metadata", "sections", "searchText", "wordCount", "tags", "extractionConfidence",
        }
        assert data["metadata"]["sourceWebsite"] == "https://acme.test"

    def test_merge_step_is_used(self) -> None:
        extractor = ContentExtractor(merge=lambda sections: sections[:1])
        result = extractor.extract("<h1>Weekly Digest</h1><p>Paragraph that is long enough.</p>", SOURCE)
        assert len(result.sections) == 1


class TestExtractionFailure:
    @patch("sift.core.extractor.sanitize")
    def test_pipeline_error_returns_fallback(self, mock_sanitize) -> None:
        mock_sanitize.side_effect = RuntimeError("malformed")
        html = "<p>" + "a" * 2000 + "</p><script>ignored()</script>"

        result = extract_content(html, SOURCE)

        assert isinstance(result, ExtractionFailure)
        assert result.success is False
        assert result.error == "malformed"
        fallback = result.fallback
        assert len(fallback.sections) == 1
        section = fallback.sections[0]
        assert section.type == SectionType.ARTICLE_BLOCK
        assert section.id == "fallback-1"
        assert section.title == "Newsletter Content"
        assert len(section.content) == 1000
        assert "ignored" not in section.content
        assert fallback.extraction_confidence == 0.3
        assert fallback.tags == []
        assert fallback.metadata.title == "Test Co Newsletter"

        data = result.to_dict()
        assert data["success"] is False
        assert data["fallback"]["sections"][0]["type"] == "article_block"

    @patch("sift.core.extractor.sanitize")
    def test_error_without_message_uses_class_name(self, mock_sanitize) -> None:
        mock_sanitize.side_effect = ValueError()
        assert extract_content("<p>Hello world</p>", SOURCE).error == "ValueError"


class TestVisibleText:
    def test_strips_scripts_and_collapses_whitespace(self) -> None:
        assert visible_text("<p>Hello</p>\n<script>x()</script><p>  world </p>") == "Hello world"
