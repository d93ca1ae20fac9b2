"""
Unit tests for the pipeline and catalog data models.
"""

import pytest

from objection_analyzer.models.catalog_models import CategoryRecord, FeedRow, SyncReport
from objection_analyzer.models.enums import Verdict
from objection_analyzer.models.pipeline_models import (
    ClassificationRecord,
    ResolutionRecord,
    ValidationRecord,
)


class TestVerdictParse:
    """Verdict.parse maps loose model output onto yes/no."""

    @pytest.mark.parametrize("value", ["yes", "YES", " Yes ", "y", "true", "True", "是", True])
    def test_affirmative_tokens(self, value):
        assert Verdict.parse(value) is Verdict.YES

    @pytest.mark.parametrize("value", ["no", "否", "", "maybe", "yes please", None, False, 0])
    def test_everything_else_is_no(self, value):
        assert Verdict.parse(value) is Verdict.NO

    def test_verdict_passes_through(self):
        assert Verdict.parse(Verdict.YES) is Verdict.YES


class TestClassificationRecord:

    def test_populates_from_camel_case_keys(self):
        record = ClassificationRecord.model_validate({
            "targetProblem": "price too high",
            "majorCode": "01",
            "majorName": "Billing",
            "minorCode": "0101",
            "minorName": "Plan price",
            "agentAnswer": "We can switch you to a cheaper plan.",
        })

        assert record.target_problem == "price too high"
        assert record.minor_code == "0101"
        assert record.excerpt == ""

    def test_coerces_nulls_and_numbers_to_text(self):
        record = ClassificationRecord.model_validate({
            "majorCode": 1,
            "minorCode": None,
            "agentAnswer": "  padded  ",
        })

        assert record.major_code == "1"
        assert record.minor_code == ""
        assert record.agent_answer == "padded"

    def test_dump_by_alias_uses_canonical_keys(self):
        record = ClassificationRecord(target_problem="p", agent_answer="a")
        dumped = record.model_dump(by_alias=True)

        assert dumped["targetProblem"] == "p"
        assert dumped["agentAnswer"] == "a"
        assert "excerpt" in dumped

    def test_stage_records_are_supersets(self):
        base = ClassificationRecord(target_problem="p", major_code="01", excerpt="e")
        validated = ValidationRecord(**base.classification_fields(), is_answer_valid=Verdict.YES)
        resolved = ResolutionRecord(**validated.model_dump(), is_resolved=Verdict.NO, resolution_reason="r")

        assert resolved.target_problem == "p"
        assert resolved.major_code == "01"
        assert resolved.excerpt == "e"
        assert resolved.is_answer_valid is Verdict.YES
        assert resolved.is_resolved is Verdict.NO

    def test_classification_fields_excludes_stage_fields(self):
        validated = ValidationRecord(target_problem="p", is_answer_valid=Verdict.YES, validity_reason="ok")
        fields = validated.classification_fields()

        assert "is_answer_valid" not in fields
        assert "validity_reason" not in fields
        assert fields["target_problem"] == "p"


class TestCatalogModels:

    def test_differs_from_compares_content_fields_only(self):
        row = FeedRow(code="0101", big_code="01", big_name="Billing", small_code="0101", small_title="Plan price",
                      source_file="a.csv", row_index=1)
        same = CategoryRecord(code="0101", big_code="01", big_name="Billing", small_code="0101",
                              small_title="Plan price", source_file="b.csv", row_index=9, embedding=[0.1])
        renamed = same.model_copy(update={"big_name": "Charges"})

        assert not same.differs_from(row)
        assert renamed.differs_from(row)

    def test_feed_row_requires_code_and_title(self):
        with pytest.raises(ValueError):
            FeedRow(code="", small_title="x")
        with pytest.raises(ValueError):
            FeedRow(code="0101", small_title="")


class TestSyncReportSummary:

    def test_summary_samples_codes(self):
        report = SyncReport(inserted=[f"c{i}" for i in range(12)], deleted=["d1"])
        summary = report.summary(sample_size=10)

        assert "insert: 12 [c0, c1, c2, c3, c4, c5, c6, c7, c8, c9] (and 2 more)" in summary
        assert "update: 0 []" in summary
        assert "delete: 1 [d1]" in summary
        assert "failures" not in summary

    def test_summary_lists_failures(self):
        report = SyncReport(embedding_failures=["x"], failed_delete_batches=2)

        assert "failures: embedding=1 upsert=0 delete_batches=2" in report.summary()

    def test_skipped_summary(self):
        report = SyncReport(skipped=True, skip_reason="catalog already populated")

        assert report.summary() == "catalog sync skipped: catalog already populated"
        assert not report.changed
