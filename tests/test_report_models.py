"""Tests for tolerant report field access."""

from models.report_models import ABSENT, NESTED, SCALAR, ReportField, StructuredReport, render_text


def test_render_text_handles_every_json_value():
    assert render_text(None) == ""
    assert render_text("Stalemate") == "Stalemate"
    assert render_text(7) == "7"
    assert render_text(2.5) == "2.5"
    assert render_text(True) == "True"
    assert render_text({"value": 8, "unit": "pts"}) == "8"
    assert render_text({"text": "Holding"}) == "Holding"
    assert render_text(["a", "b"]) == '["a","b"]'
    assert render_text({"x": 1}) == '{"x":1}'


def test_report_field_kinds():
    assert ReportField.of("a", None).kind == ABSENT
    assert ReportField.of("a", "text").kind == SCALAR
    assert ReportField.of("a", 0).kind == SCALAR
    assert ReportField.of("a", {"k": "v"}).kind == NESTED
    assert ReportField.of("a", []).kind == NESTED


def test_report_field_number():
    assert ReportField.of("score", "7.5").number() == 7.5
    assert ReportField.of("score", 3).number() == 3.0
    assert ReportField.of("score", "high").number() is None
    assert ReportField.of("score", True).number() is None
    assert ReportField.of("score", {"value": 3}).number() is None
    assert ReportField.of("score", None).number() is None


def test_nested_where_scalar_expected_does_not_raise():
    report = StructuredReport(data={"title": {"value": "Op Nested"}, "summary": ["line one"], "risks": "none"})

    assert report.title == "Op Nested"
    assert report.summary == '["line one"]'
    assert report.scalar_text("title") is None
    assert report.items("risks") == []
    assert report.section("summary") == {}
    assert report.text("missing", default="n/a") == "n/a"


def test_rendered_flattens_scalars_and_marks_parse_state():
    report = StructuredReport(data={"title": "Op", "score": 4, "risks": [{"label": "r"}]})

    rendered = report.rendered()

    assert rendered == {"title": "Op", "score": "4", "risks": [{"label": "r"}], "parse_failed": False}


def test_fallback_report_keeps_raw_text():
    report = StructuredReport.fallback("raw words")

    assert report.parse_failed is True
    assert report.summary == "raw words"
    assert report.rendered()["parse_failed"] is True
