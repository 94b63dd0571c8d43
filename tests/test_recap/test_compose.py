"""Tests for recap composition and the markdown-to-HTML step."""

from datetime import datetime
from types import SimpleNamespace

from recap import NO_MEETINGS, compose_recap, markdown_to_html


def _summary(title, hour, summary_md="- Discussed things", items=()):
    return SimpleNamespace(
        title=title,
        starts_at=datetime(2024, 1, 15, hour, 0),
        summary_md=summary_md,
        action_item_list=list(items),
    )


def test_no_meetings():
    content = compose_recap([], "2024-01-15", "UTC")
    assert content.startswith("# Your DayBrief — 2024-01-15")
    assert NO_MEETINGS in content
    assert "##" not in content


def test_one_section_per_summary_in_order():
    content = compose_recap(
        [
            _summary("Standup", 17, items=["Ana: ship it — Friday"]),
            _summary("Planning", 21),
        ],
        "2024-01-15",
        "America/Los_Angeles",
    )
    assert content.count("## ") == 2
    assert content.index("## 9:00 AM — Standup") < content.index("## 1:00 PM — Planning")
    assert "**Action Items**\n- Ana: ship it — Friday" in content
    assert "**Action Items**\n- None" in content
    assert content.endswith("—\nSent by DayBrief")


def test_settings_link_in_footer():
    content = compose_recap([_summary("Standup", 17)], "2024-01-15", "UTC",
                            settings_url="http://localhost/settings")
    assert content.endswith("Sent by DayBrief • [Update Settings](http://localhost/settings)")


def test_markdown_to_html():
    markdown = "# Heading\n\n## 9:00 AM — Sync\n**Action Items**\n- one\n- two\n\nafter"
    result = markdown_to_html(markdown)
    assert "<h1>Heading</h1>" in result
    assert "<h2>9:00 AM — Sync</h2>" in result
    assert "<strong>Action Items</strong>" in result
    assert "<ul><li>one</li><br><li>two</li><br></ul>" in result
    assert "\n" not in result


def test_markdown_to_html_escapes():
    assert "&lt;script&gt;" in markdown_to_html("- <script>")
