"""Tests for sift.extract.segmenter module."""

from bs4 import BeautifulSoup

from sift.core.models import HeadingSection, SectionType, TableSection
from sift.extract.sanitizer import sanitize
from sift.extract.segmenter import Segmenter, determine_section_type, segment


def _segment(html: str, merge=None):
    return segment(sanitize(BeautifulSoup(html, "html.parser")), merge)


def _types(sections):
    return [section.type for section in sections]


class TestSegment:
    def test_heading_and_text(self) -> None:
        sections = _segment("<h2>Top Story</h2><p>Just a normal paragraph here.</p>")
        assert _types(sections) == [SectionType.HEADING, SectionType.TEXT_BLOCK]
        assert isinstance(sections[0], HeadingSection)
        assert sections[0].level == 2
        assert sections[0].title == "Top Story"
        assert sections[1].title == "Top Story"

    def test_title_from_first_sentence_without_heading(self) -> None:
        sections = _segment("<p>First sentence here. Second sentence follows.</p>")
        assert sections[0].title == "First sentence here"

    def test_title_from_heading_before_an_ancestor(self) -> None:
        sections = _segment("<h3>Markets</h3><div><p>A paragraph inside a wrapper div.</p></div>")
        assert [section.title for section in sections] == ["Markets", "Markets", "Markets"]

    def test_long_first_sentence_gives_empty_title(self) -> None:
        sections = _segment(f"<p>{'word ' * 30}</p>")
        assert sections[0].title == ""

    def test_short_text_is_dropped_except_headings_and_images(self) -> None:
        sections = _segment('<p>Too short</p><h4>Hi</h4><img src="https://example.com/a.png" alt="Cover">')
        assert _types(sections) == [SectionType.HEADING, SectionType.IMAGE]
        assert sections[1].title == "Cover"
        assert [image.src for image in sections[1].images] == ["https://example.com/a.png"]

    def test_navigation_phrases_are_dropped(self) -> None:
        sections = _segment("<p>Forward to a friend who likes this</p><p>Contact us for sponsorships</p>")
        assert sections == []

    def test_table(self) -> None:
        sections = _segment(
            "<table><tr><th>Metric</th><th>Value</th></tr>"
            "<tr><td>Subscribers</td><td>1200</td></tr><tr><td></td><td></td></tr></table>"
        )
        assert len(sections) == 1
        table = sections[0]
        assert isinstance(table, TableSection)
        assert table.title == "Data Table"
        assert table.table_data == [["Metric", "Value"], ["Subscribers", "1200"]]
        assert table.to_dict()["tableData"] == [["Metric", "Value"], ["Subscribers", "1200"]]

    def test_image_with_caption_and_article_with_images(self) -> None:
        sections = _segment(
            '<div><img src="https://example.com/a.jpg"><span>Short caption</span></div>'
            f'<div><img src="https://example.com/b.jpg"><span>{"long text " * 10}</span></div>'
        )
        assert _types(sections) == [
            SectionType.IMAGE_WITH_CAPTION, SectionType.IMAGE,
            SectionType.ARTICLE_WITH_IMAGES, SectionType.IMAGE,
        ]
        assert sections[0].title == "Short caption"
        assert sections[1].title == "Image"

    def test_link_collection(self) -> None:
        items = "".join(f'<li><a href="https://example.com/{i}">Story number {i}</a></li>' for i in range(4))
        sections = _segment(f"<ul>{items}</ul>")
        assert _types(sections) == [SectionType.LINK_COLLECTION]
        assert len(sections[0].links) == 4

    def test_data_highlight(self) -> None:
        assert _types(_segment("<p>Revenue grew to $1,200 this quarter</p>")) == [SectionType.DATA_HIGHLIGHT]
        assert _types(_segment("<p>Open rate hit 45 % for the week</p>")) == [SectionType.DATA_HIGHLIGHT]

    def test_article_block(self) -> None:
        assert _types(_segment(f"<p>{'word ' * 120}</p>")) == [SectionType.ARTICLE_BLOCK]

    def test_list_content(self) -> None:
        sections = _segment("<div>Things to read this week:<ul><li>First long item</li></ul></div>")
        assert sections[0].type == SectionType.LIST_CONTENT
        assert sections[1].type == SectionType.TEXT_BLOCK

    def test_orders_are_gapless(self) -> None:
        sections = _segment(
            "<h1>Title</h1><p>Short</p><p>Paragraph one is long enough.</p>"
            "<p>unsubscribe</p><p>Paragraph two is long enough.</p>"
        )
        assert [section.order for section in sections] == list(range(1, len(sections) + 1))
        assert [section.id for section in sections] == [f"section-{i}" for i in range(1, len(sections) + 1)]

    def test_merge_step_output_is_renumbered(self) -> None:
        html = "".join(f"<p>Paragraph number {i} of the issue.</p>" for i in range(5))
        sections = _segment(html, merge=lambda found: found[::2])
        assert [section.order for section in sections] == [1, 2, 3]
        assert [section.content for section in sections] == [
            "Paragraph number 0 of the issue.",
            "Paragraph number 2 of the issue.",
            "Paragraph number 4 of the issue.",
        ]
        assert sections[2].id == "section-3"

    def test_every_url_is_absolute(self) -> None:
        sections = _segment(
            '<p>See <a href="/relative">this</a> and <a href="//example.com/x">that one</a>.</p>'
            '<div><img src="/local.png"><img src="//cdn.example.com/y.png"> Some caption</div>'
        )
        urls = [link.href for s in sections for link in s.links] + [image.src for s in sections for image in s.images]
        assert urls
        assert all(url.startswith(("http://", "https://")) for url in urls)


class TestSegmenter:
    def test_default_merge_passes_through(self) -> None:
        soup = BeautifulSoup("<p>Paragraph one is long enough.</p>", "html.parser")
        assert len(Segmenter().segment(soup)) == 1


class TestDetermineSectionType:
    def test_priority_heading_over_data(self) -> None:
        element = BeautifulSoup("<h2>Up 50%</h2>", "html.parser").h2
        assert determine_section_type(element, "Up 50%") == SectionType.HEADING
