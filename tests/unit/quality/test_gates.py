"""
Unit tests for quality metrics, stage gates and the final assessment.
"""

import pytest

from pagesift.config import GateConfig
from pagesift.exceptions import QualityGateFailure
from pagesift.quality import (
    GATE_A,
    GATE_B,
    GATE_C,
    QualityGateValidator,
    QualityMetrics,
    assess_output_quality,
    compute_metrics,
    compute_score,
    generate_report,
)
from pagesift.tree import ContentNode, build_tree, find_body
from pagesift.tree.predicates import tag_in


def article(html):
    return build_tree(html).find(tag_in("article"))


@pytest.mark.unit
class TestMetrics:
    """Test candidate metrics."""

    def test_none_yields_zero_metrics(self):
        metrics = compute_metrics(None)
        assert metrics == QualityMetrics()
        assert metrics.is_empty

    def test_article_metrics(self, article_tree):
        metrics = compute_metrics(article_tree.find(tag_in("article")))
        assert metrics.paragraph_count == 5
        assert metrics.heading_count == 1
        assert metrics.link_density == 0.0
        assert metrics.structure_score == 25
        assert 0.9 < metrics.signal_to_noise_ratio <= 1.0
        assert metrics.avg_paragraph_length > 100

    def test_structure_score_is_capped(self):
        headings = "".join(f"<section><h2>Part {i}</h2></section>" for i in range(10))
        metrics = compute_metrics(article(f"<article>{headings}</article>"))
        assert metrics.structure_score == 100

    def test_link_density(self):
        metrics = compute_metrics(article('<article><p>abcd<a href="#">efgh</a></p></article>'))
        assert metrics.link_density == pytest.approx(0.5)


@pytest.mark.unit
class TestComputeScore:
    """Test the weighted 0-100 score."""

    def test_typical_article(self):
        metrics = QualityMetrics(
            character_count=1200,
            paragraph_count=5,
            link_density=0.05,
            signal_to_noise_ratio=0.8,
            structure_score=25,
        )
        assert compute_score(metrics) == 83

    def test_empty_candidate_gets_only_link_density_points(self):
        assert compute_score(QualityMetrics()) == 20

    @pytest.mark.parametrize(
        "characters,expected",
        [(299, 20), (300, 35), (999, 35), (1000, 45), (4999, 45), (5000, 50)],
    )
    def test_character_bands(self, characters, expected):
        assert compute_score(QualityMetrics(character_count=characters)) == expected

    def test_rounds_half_up(self):
        metrics = QualityMetrics(link_density=0.7, structure_score=5)
        assert compute_score(metrics) == 1

    def test_maximum_score(self):
        metrics = QualityMetrics(
            character_count=10**6,
            paragraph_count=100,
            signal_to_noise_ratio=1.0,
            structure_score=100,
        )
        # structure contributes at most a tenth of its capped score
        assert compute_score(metrics) == 95


@pytest.mark.unit
class TestQualityGates:
    """Test gate verdicts."""

    def test_gate_a_passes_good_article(self, article_tree):
        verdict = QualityGateValidator().gate_a(article_tree.find(tag_in("article")))
        assert verdict.gate == GATE_A
        assert verdict.passed
        assert verdict.score >= 60
        assert verdict.failure_reasons == ()

    def test_gate_a_fails_missing_candidate(self):
        verdict = QualityGateValidator().gate_a(None)
        assert not verdict.passed
        assert verdict.score == 20
        assert verdict.failure_reasons[0] == "Quality score too low: 20 < 60"
        assert "Low character count: 0 < 500" in verdict.failure_reasons

    def test_gate_b_missing_output_scores_zero(self):
        verdict = QualityGateValidator().gate_b(None)
        assert verdict.gate == GATE_B
        assert verdict.score == 0
        assert verdict.failure_reasons == ("No content extracted by readability extractor",)
        assert QualityGateValidator().gate_b(ContentNode.element("div")).score == 0

    def test_gate_c_always_passes(self):
        validator = QualityGateValidator()
        for node in (None, ContentNode.element("div"), build_tree("<p>x</p>")):
            verdict = validator.gate_c(node)
            assert verdict.gate == GATE_C
            assert verdict.passed

    def test_score_alone_decides_by_default(self):
        node = article(f"<article><p>{'word ' * 300}</p></article>")
        lenient = QualityGateValidator().gate_a(node)
        strict = QualityGateValidator(GateConfig(strict_criteria=True)).gate_a(node)

        assert lenient.score == 72
        assert lenient.passed
        assert not strict.passed
        assert any(reason.startswith("Insufficient paragraphs") for reason in strict.failure_reasons)

    def test_ensure_passed(self, article_tree):
        validator = QualityGateValidator()
        passing = validator.gate_a(article_tree.find(tag_in("article")))
        assert validator.ensure_passed(passing) is passing
        with pytest.raises(QualityGateFailure) as exc_info:
            validator.ensure_passed(validator.gate_a(None))
        assert exc_info.value.verdict.gate == GATE_A

    def test_generate_report(self):
        report = generate_report(QualityGateValidator().gate_a(None))
        assert report.startswith("Quality Gate Report (gate_a)")
        assert "Status: FAILED" in report
        assert "Failure Reasons:" in report


@pytest.mark.unit
class TestOutputAssessment:
    """Test the final markdown assessment."""

    def test_clean_output_scores_full_marks(self):
        source = find_body(build_tree("<body><h1>Title</h1><p>Some paragraph text.</p></body>"))
        assert assess_output_quality("# Title\n\nSome paragraph text.\n", source) == 100

    def test_errors_and_warnings_are_penalized(self):
        assert assess_output_quality("text", None, errors=["e"], warnings=["w1", "w2"]) == 70

    def test_extreme_reduction_is_penalized(self):
        source = ContentNode.element("body", children=["x" * 1000])
        assert assess_output_quality("y" * 50, source) == 70
        assert assess_output_quality("y" * 200, source) == 85

    def test_lost_headings_are_penalized(self):
        source = find_body(build_tree("<body><h2>a</h2><h2>b</h2><h2>c</h2><h2>d</h2></body>"))
        assert assess_output_quality("## a\n\nabcd", source) == 80

    def test_html_leaks_and_blank_runs_are_penalized(self):
        assert assess_output_quality("<div>text</div>", None) == 85
        assert assess_output_quality("a\n\n\n\nb", None) == 90

    def test_score_never_negative(self):
        assert assess_output_quality("", None, errors=["e"] * 10) == 0
