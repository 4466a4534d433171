"""Tests for agency_matching — validator email merging."""

from agency_matching.emails import MergedEmails, merge_validator_email


class TestMergeValidatorEmail:
    def test_appends_new_email_to_validators(self):
        merged = merge_validator_email([], ["existing@mail.com"], "molsheim@pole-emploi.fr")
        assert merged == MergedEmails(
            counsellor_emails=[],
            validator_emails=["existing@mail.com", "molsheim@pole-emploi.fr"],
        )

    def test_already_validator(self):
        merged = merge_validator_email([], ["molsheim@pole-emploi.fr"], "molsheim@pole-emploi.fr")
        assert merged.validator_emails == ["molsheim@pole-emploi.fr"]

    def test_already_counsellor(self):
        merged = merge_validator_email(["molsheim@pole-emploi.fr"], [], "molsheim@pole-emploi.fr")
        assert merged.counsellor_emails == ["molsheim@pole-emploi.fr"]
        assert merged.validator_emails == []

    def test_missing_email(self):
        merged = merge_validator_email(["c@mail.com"], ["v@mail.com"], None)
        assert merged == (["c@mail.com"], ["v@mail.com"])

    def test_empty_email(self):
        assert merge_validator_email([], [], "").validator_emails == []

    def test_comparison_is_exact(self):
        merged = merge_validator_email([], ["Molsheim@pole-emploi.fr"], "molsheim@pole-emploi.fr")
        assert merged.validator_emails == ["Molsheim@pole-emploi.fr", "molsheim@pole-emploi.fr"]

    def test_keeps_order(self):
        merged = merge_validator_email(["c2", "c1"], ["v2", "v1"], "new")
        assert merged.counsellor_emails == ["c2", "c1"]
        assert merged.validator_emails == ["v2", "v1", "new"]

    def test_inputs_not_mutated(self):
        counsellors = ["c@mail.com"]
        validators = ["v@mail.com"]
        merged = merge_validator_email(counsellors, validators, "new@mail.com")
        assert counsellors == ["c@mail.com"]
        assert validators == ["v@mail.com"]
        assert merged.counsellor_emails is not counsellors
