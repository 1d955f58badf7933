"""Markdown renderer tests."""

from dashboard.services.markdown import render_markdown


def test_empty_input() -> None:
    assert render_markdown("") == ""


def test_paragraphs_and_line_breaks() -> None:
    html = render_markdown("First line\nsecond line\n\nNext paragraph")

    assert html == "<p>First line<br />second line</p><p>Next paragraph</p>"


def test_headings_and_bold() -> None:
    html = render_markdown("# Title\n\n## Section\n\n### Sub\n\nSome **bold** text")

    assert html == (
        "<h1>Title</h1><h2>Section</h2><h3>Sub</h3><p>Some <strong>bold</strong> text</p>"
    )


def test_bullets_become_single_list() -> None:
    html = render_markdown("Team:\n\n* Ann\n- Bob\n* **Cid**")

    assert html == "<p>Team:</p><ul><li>Ann</li><li>Bob</li><li><strong>Cid</strong></li></ul>"


def test_table() -> None:
    markdown = "| Name | Status |\n|---|:---:|\n| Ann | Bench |\n| Bob | ATG |\n"

    html = render_markdown(markdown)

    assert html == (
        "<table><thead><tr><th>Name</th><th>Status</th></tr></thead>"
        "<tbody><tr><td>Ann</td><td>Bench</td></tr><tr><td>Bob</td><td>ATG</td></tr>"
        "</tbody></table>"
    )


def test_table_between_paragraphs() -> None:
    markdown = "Results:\n\n| A | B |\n|---|---|\n| 1 | 2 |\n\nDone."

    html = render_markdown(markdown)

    assert html.startswith("<p>Results:</p><table>")
    assert "<td>1</td><td>2</td>" in html
    assert html.endswith("</table><p>Done.</p>")


def test_html_is_escaped() -> None:
    html = render_markdown("<script>alert(1)</script>")

    assert "<script>" not in html
    assert html == "<p>&lt;script&gt;alert(1)&lt;/script&gt;</p>"
