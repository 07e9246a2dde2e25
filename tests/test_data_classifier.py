"""
Property-based tests for the MSA data classifier.

The classifier is shared by the network observer and the post-capture check,
so its verdicts must be deterministic and follow the same rules everywhere.
"""

import pytest
from hypothesis import given, strategies as st, settings, HealthCheck

from gene_msa_collector.models.validation import (
    MSADataValidator,
    ValidationErrorType,
    is_valid_msa_data
)


nucleotide_run_strategy = st.text(alphabet="ATCGNatcgn-", min_size=10, max_size=200)

rna_run_strategy = st.text(alphabet="ACGUNacgun-", min_size=10, max_size=200)

filler_strategy = st.text(
    alphabet=st.characters(blacklist_characters="\x00\ufffd", blacklist_categories=("Cs",)),
    max_size=300
)


@st.composite
def valid_export_strategy(draw):
    """FASTA or tab-separated text satisfying every classifier rule."""
    marker = draw(st.sampled_from([">", "\t"]))
    run = draw(st.one_of(nucleotide_run_strategy, rna_run_strategy))
    filler = draw(filler_strategy)
    text = f"{marker}gene_1\n{run}\n{filler}"
    if len(text) < 100:
        text = text + "-" * (100 - len(text))
    return text


class TestClassifierProperties:
    """Property-based tests for classifier verdicts."""

    @given(text=st.text(max_size=400))
    @settings(max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_verdict_is_deterministic(self, text):
        """The same blob always gets the same verdict."""
        assert is_valid_msa_data(text) == is_valid_msa_data(text)
        assert MSADataValidator().is_valid(text) == is_valid_msa_data(text)

    @given(text=st.text(max_size=99))
    @settings(max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_short_blobs_rejected(self, text):
        """Anything shorter than 100 characters is rejected."""
        result = MSADataValidator().validate(text)
        assert not result.is_valid
        assert ValidationErrorType.TOO_SHORT in [e.error_type for e in result.errors]

    @given(text=valid_export_strategy(), position=st.integers(min_value=0, max_value=1000),
           poison=st.sampled_from(["\x00", "\ufffd"]))
    @settings(max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_null_byte_or_replacement_character_rejected(self, text, position, poison):
        """A null byte or U+FFFD anywhere rejects otherwise valid data."""
        index = position % (len(text) + 1)
        poisoned = text[:index] + poison + text[index:]
        assert not is_valid_msa_data(poisoned)

    @given(text=valid_export_strategy())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_well_formed_exports_accepted(self, text):
        """Marker + nucleotide run + length + no binary signature is accepted."""
        result = MSADataValidator().validate(text)
        assert result.is_valid, result.error_message


class TestClassifierRules:
    """Example-based tests for individual rules."""

    def _padded(self, text: str) -> str:
        return text + "\n" + "ACGT" * 30

    @pytest.mark.parametrize("signature", ["\x89PNG", "\xff\xd8\xff", "GIF8", "BM"])
    def test_binary_signatures_rejected(self, signature):
        text = signature + self._padded(">gene")
        result = MSADataValidator().validate(text)
        assert not result.is_valid
        assert result.errors[0].error_type == ValidationErrorType.BINARY_CONTENT

    def test_missing_marker_rejected(self):
        text = "gene header without marker\n" + "ACGT" * 40
        result = MSADataValidator().validate(text)
        assert [e.error_type for e in result.errors] == [ValidationErrorType.INVALID_FORMAT]

    def test_missing_nucleotide_run_rejected(self):
        text = ">protein\n" + "MKVLWQERTY" * 15
        result = MSADataValidator().validate(text)
        assert [e.error_type for e in result.errors] == [ValidationErrorType.MISSING_SEQUENCE]

    def test_tab_separated_export_accepted(self):
        text = "id\tsequence\n" + "Glyma.01G000100\t" + "acgtacgtacgt" * 10
        assert is_valid_msa_data(text)

    def test_rna_alphabet_accepted(self):
        text = ">transcript\n" + "ACGUACGUUU" * 12
        assert is_valid_msa_data(text)

    def test_non_text_payload_rejected(self):
        result = MSADataValidator().validate(b">gene\nACGTACGTACGT")
        assert not result.is_valid
        assert result.errors[0].error_type == ValidationErrorType.NOT_TEXT

    def test_all_failed_rules_reported(self):
        result = MSADataValidator().validate("short")
        types = {e.error_type for e in result.errors}
        assert types == {
            ValidationErrorType.TOO_SHORT,
            ValidationErrorType.INVALID_FORMAT,
            ValidationErrorType.MISSING_SEQUENCE
        }
        assert "expected at least 100" in result.error_message

    def test_custom_minimum_length(self):
        text = ">g\nACGTACGTACGT"
        assert MSADataValidator(min_length=10).is_valid(text)
        assert not MSADataValidator(min_length=100).is_valid(text)
