"""Tests for split resolution (equal, exact and percentage policies)."""

from decimal import Decimal

import pytest

from splitledger.exceptions import (
    DuplicateParticipantError,
    EmptyParticipantsError,
    InvalidAmountError,
    InvalidParticipantValueError,
    SumMismatchError,
    ValidationError,
)
from splitledger.ledger.resolver import (
    resolve,
    shares_by_participant,
    validate_split,
)
from splitledger.models import ParticipantInput, SplitPolicy


# Helper functions for tests
def people(*ids: str) -> list[ParticipantInput]:
    """Participants without values (equal split)."""
    return [ParticipantInput(participant_id=pid) for pid in ids]


def valued(**values) -> list[ParticipantInput]:
    """Participants with values, in keyword order."""
    return [
        ParticipantInput(participant_id=pid, value=value)
        for pid, value in values.items()
    ]


def total_of(shares) -> Decimal:
    return sum((s.amount for s in shares), Decimal("0"))


class TestEqualSplit:
    """Test cases for the EQUAL policy."""

    def test_exact_division(self):
        """$100 between two people is $50 each."""
        shares = resolve(Decimal("100.00"), SplitPolicy.EQUAL, people("A", "B"))

        assert [(s.participant_id, s.amount) for s in shares] == [
            ("A", Decimal("50.00")),
            ("B", Decimal("50.00")),
        ]

    def test_remainder_goes_to_first(self):
        """$100 / 3 leaves a cent; the first participant takes it."""
        shares = resolve(Decimal("100.00"), SplitPolicy.EQUAL, people("A", "B", "C"))

        assert [s.amount for s in shares] == [
            Decimal("33.34"),
            Decimal("33.33"),
            Decimal("33.33"),
        ]
        assert total_of(shares) == Decimal("100.00")

    def test_remainder_follows_input_order(self):
        """Reordering participants moves the remainder with the first entry."""
        shares = resolve(Decimal("100.00"), SplitPolicy.EQUAL, people("C", "B", "A"))

        assert shares[0].participant_id == "C"
        assert shares[0].amount == Decimal("33.34")

    def test_multi_cent_remainder(self):
        """$0.05 among 3 is $0.01 each plus $0.02 for the first."""
        shares = resolve(Decimal("0.05"), SplitPolicy.EQUAL, people("A", "B", "C"))

        assert [s.amount for s in shares] == [
            Decimal("0.03"),
            Decimal("0.01"),
            Decimal("0.01"),
        ]

    def test_more_people_than_cents(self):
        """$0.02 among 3: two people get nothing, the first gets both cents."""
        shares = resolve(Decimal("0.02"), SplitPolicy.EQUAL, people("A", "B", "C"))

        assert [s.amount for s in shares] == [
            Decimal("0.02"),
            Decimal("0.00"),
            Decimal("0.00"),
        ]

    def test_single_participant(self):
        """One participant carries the whole amount."""
        shares = resolve(Decimal("12.34"), SplitPolicy.EQUAL, people("A"))

        assert shares[0].amount == Decimal("12.34")

    def test_values_are_ignored(self):
        """Values supplied for an equal split don't affect the result."""
        shares = resolve(
            Decimal("10.00"), SplitPolicy.EQUAL, valued(A="99", B="1")
        )

        assert [s.amount for s in shares] == [Decimal("5.00"), Decimal("5.00")]

    @pytest.mark.parametrize(
        "amount",
        ["0.01", "1.00", "10.01", "99.99", "100.00", "333.33", "1000000.07"],
    )
    @pytest.mark.parametrize("count", [1, 2, 3, 6, 7, 11])
    def test_shares_always_sum_to_total(self, amount, count):
        """Sum invariant holds across awkward amounts and group sizes."""
        ids = [f"p{i}" for i in range(count)]
        shares = resolve(Decimal(amount), SplitPolicy.EQUAL, people(*ids))

        assert total_of(shares) == Decimal(amount)
        assert all(s.amount >= 0 for s in shares)


class TestExactSplit:
    """Test cases for the EXACT policy."""

    def test_valid_amounts(self):
        """Supplied amounts are used as shares."""
        shares = resolve(Decimal("100.00"), SplitPolicy.EXACT, valued(A=60, B=40))

        assert [(s.participant_id, s.amount) for s in shares] == [
            ("A", Decimal("60.00")),
            ("B", Decimal("40.00")),
        ]

    def test_sum_mismatch_fails(self):
        """Amounts that don't add up to the total are rejected."""
        with pytest.raises(SumMismatchError) as exc_info:
            resolve(Decimal("100.00"), SplitPolicy.EXACT, valued(A=30, B=30))

        assert exc_info.value.rule == "exact_sum"
        assert exc_info.value.expected == Decimal("100.00")
        assert exc_info.value.actual == Decimal("60")
        assert "60" in str(exc_info.value)
        assert "100.00" in str(exc_info.value)

    def test_float_noise_within_tolerance(self):
        """Float input noise inside the tolerance still resolves exactly."""
        shares = resolve(
            Decimal("0.30"), SplitPolicy.EXACT, valued(A=0.1, B=0.2)
        )

        assert [s.amount for s in shares] == [Decimal("0.10"), Decimal("0.20")]

    def test_cent_residual_absorbed_by_first(self):
        """A one-cent shortfall (inside tolerance) lands on the first share."""
        shares = resolve(
            Decimal("100.00"), SplitPolicy.EXACT, valued(A="60.00", B="39.99")
        )

        assert [s.amount for s in shares] == [Decimal("60.01"), Decimal("39.99")]
        assert total_of(shares) == Decimal("100.00")

    def test_sub_cent_values_rounded_to_total(self):
        """Half-cent amounts that round up past the total still resolve exactly."""
        shares = resolve(
            Decimal("100.00"), SplitPolicy.EXACT, valued(A="50.005", B="50.005")
        )

        # 50.01 + 50.01 overshoots by 0.02, taken back from the first share
        assert [s.amount for s in shares] == [Decimal("49.99"), Decimal("50.01")]
        assert total_of(shares) == Decimal("100.00")

    def test_sub_cent_values_half_up(self):
        """Sub-cent amounts round half-up; the overshoot comes off the first."""
        shares = resolve(
            Decimal("100.00"), SplitPolicy.EXACT, valued(A="33.335", B="66.665")
        )

        assert [s.amount for s in shares] == [Decimal("33.33"), Decimal("66.67")]

    def test_overshoot_skips_zero_share(self):
        """A zero first share is never pushed negative by an overshoot."""
        shares = resolve(Decimal("100.00"), SplitPolicy.EXACT, valued(A=0, B="100.01"))

        assert [s.amount for s in shares] == [Decimal("0.00"), Decimal("100.00")]

    def test_overshoot_spread_over_small_shares(self):
        """An overshoot larger than any single share is taken across several."""
        shares = resolve(
            Decimal("0.01"),
            SplitPolicy.EXACT,
            valued(A="0.005", B="0.005", C="0.005", D="0.005"),
        )

        assert [s.amount for s in shares] == [
            Decimal("0.00"),
            Decimal("0.00"),
            Decimal("0.00"),
            Decimal("0.01"),
        ]

    def test_zero_share_allowed(self):
        """A participant may owe nothing."""
        shares = resolve(Decimal("50.00"), SplitPolicy.EXACT, valued(A=50, B=0))

        assert shares[1].amount == Decimal("0.00")

    def test_negative_amount_fails(self):
        """Negative exact amounts are rejected even if the sum matches."""
        with pytest.raises(InvalidParticipantValueError) as exc_info:
            resolve(Decimal("10.00"), SplitPolicy.EXACT, valued(A=20, B=-10))

        assert exc_info.value.participant_id == "B"

    def test_missing_amount_fails(self):
        """Every participant needs an amount."""
        participants = [
            ParticipantInput(participant_id="A", value="10.00"),
            ParticipantInput(participant_id="B"),
        ]

        with pytest.raises(InvalidParticipantValueError, match="B"):
            resolve(Decimal("10.00"), SplitPolicy.EXACT, participants)

    def test_non_numeric_amount_fails(self):
        """Garbage values are reported against the participant."""
        with pytest.raises(InvalidParticipantValueError) as exc_info:
            resolve(Decimal("10.00"), SplitPolicy.EXACT, valued(A="ten"))

        assert exc_info.value.participant_id == "A"


class TestPercentageSplit:
    """Test cases for the PERCENTAGE policy."""

    def test_thirds_sum_to_total(self):
        """33.33/33.33/33.34 percent of $100 sums to exactly $100."""
        shares = resolve(
            Decimal("100.00"),
            SplitPolicy.PERCENTAGE,
            valued(A="33.33", B="33.33", C="33.34"),
        )

        assert total_of(shares) == Decimal("100.00")
        assert [s.amount for s in shares] == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]

    def test_remainder_goes_to_first(self):
        """Floor rounding leftovers go to the first participant."""
        shares = resolve(
            Decimal("10.00"),
            SplitPolicy.PERCENTAGE,
            valued(A="33.33", B="33.33", C="33.34"),
        )

        # Floors: 3.33, 3.33, 3.33 -> 0.01 left for A
        assert [s.amount for s in shares] == [
            Decimal("3.34"),
            Decimal("3.33"),
            Decimal("3.33"),
        ]

    def test_even_split(self):
        """50/50 of an odd-cent amount."""
        shares = resolve(Decimal("0.03"), SplitPolicy.PERCENTAGE, valued(A=50, B=50))

        assert [s.amount for s in shares] == [Decimal("0.02"), Decimal("0.01")]

    def test_overshoot_taken_from_first(self):
        """Percentages summing to 100.01 give back the extra cent."""
        shares = resolve(
            Decimal("100.00"), SplitPolicy.PERCENTAGE, valued(A="50.01", B=50)
        )

        assert [s.amount for s in shares] == [Decimal("50.00"), Decimal("50.00")]

    def test_overshoot_skips_zero_percent_first(self):
        """A 0% first participant never ends up with a negative share."""
        shares = resolve(
            Decimal("10000.00"),
            SplitPolicy.PERCENTAGE,
            valued(A=0, B="50.01", C=50),
        )

        assert [s.amount for s in shares] == [
            Decimal("0.00"),
            Decimal("5000.00"),
            Decimal("5000.00"),
        ]
        assert total_of(shares) == Decimal("10000.00")

    def test_sum_mismatch_fails(self):
        """Percentages must sum to 100."""
        with pytest.raises(SumMismatchError) as exc_info:
            resolve(Decimal("100.00"), SplitPolicy.PERCENTAGE, valued(A=50, B=40))

        assert exc_info.value.rule == "percentage_sum"
        assert exc_info.value.expected == Decimal("100")
        assert exc_info.value.actual == Decimal("90")

    @pytest.mark.parametrize("value", [-1, "100.01", 150])
    def test_out_of_range_fails(self, value):
        """Each percentage must be within 0-100."""
        participants = [
            ParticipantInput(participant_id="A", value=value),
            ParticipantInput(participant_id="B", value=0),
        ]

        with pytest.raises(InvalidParticipantValueError):
            resolve(Decimal("10.00"), SplitPolicy.PERCENTAGE, participants)

    def test_hundred_percent_to_one(self):
        """One participant may carry 100%."""
        shares = resolve(
            Decimal("42.42"), SplitPolicy.PERCENTAGE, valued(A=0, B=100)
        )

        assert [s.amount for s in shares] == [Decimal("0.00"), Decimal("42.42")]


class TestPreconditions:
    """Validation shared by every policy."""

    @pytest.mark.parametrize("policy", list(SplitPolicy))
    def test_empty_participants(self, policy):
        """At least one participant is required."""
        with pytest.raises(EmptyParticipantsError) as exc_info:
            resolve(Decimal("10.00"), policy, [])

        assert exc_info.value.rule == "participants_required"

    @pytest.mark.parametrize("amount", ["0", "0.00", "-5.00"])
    def test_non_positive_total(self, amount):
        """Totals must be strictly positive."""
        with pytest.raises(InvalidAmountError) as exc_info:
            resolve(Decimal(amount), SplitPolicy.EQUAL, people("A"))

        assert exc_info.value.rule == "amount_positive"

    def test_sub_cent_total(self):
        """Totals are whole cents."""
        with pytest.raises(InvalidAmountError) as exc_info:
            resolve(Decimal("10.005"), SplitPolicy.EQUAL, people("A"))

        assert exc_info.value.rule == "amount_format"

    def test_duplicate_participants(self):
        """Each participant may appear only once."""
        with pytest.raises(DuplicateParticipantError) as exc_info:
            resolve(Decimal("10.00"), SplitPolicy.EQUAL, people("A", "B", "A"))

        assert exc_info.value.participant_ids == ["A"]

    def test_unknown_policy(self):
        """Unknown policies are a validation error, not a crash."""
        with pytest.raises(ValidationError) as exc_info:
            resolve(Decimal("10.00"), "WEIGHTED", people("A"))

        assert exc_info.value.rule == "split_policy"

    def test_policy_by_name(self):
        """Policies may be given by their string value."""
        shares = resolve("10.00", "EQUAL", people("A", "B"))

        assert [s.amount for s in shares] == [Decimal("5.00"), Decimal("5.00")]

    def test_float_total(self):
        """Float totals are converted without binary noise."""
        shares = resolve(0.3, SplitPolicy.EQUAL, people("A", "B", "C"))

        assert [s.amount for s in shares] == [Decimal("0.10")] * 3


class TestValidateSplit:
    """Tests for the non-raising validator."""

    def test_valid_split_has_no_errors(self):
        """A valid split returns an empty list."""
        assert validate_split("100.00", SplitPolicy.EXACT, valued(A=60, B=40)) == []

    def test_collects_multiple_errors(self):
        """Basic rule violations are all reported together."""
        errors = validate_split("0", SplitPolicy.EQUAL, people("A", "A"))

        assert len(errors) == 2
        assert any("greater than 0" in e for e in errors)
        assert any("Duplicate" in e for e in errors)

    def test_reports_sum_mismatch(self):
        """Policy-specific errors are reported when basics pass."""
        errors = validate_split("100.00", SplitPolicy.PERCENTAGE, valued(A=10))

        assert errors == ["Percentages must sum to 100, got 10.00"]


class TestDeterminism:
    """Same input, same output."""

    def test_repeat_resolution_is_identical(self):
        """Resolving twice gives identical shares in identical order."""
        participants = valued(A="12.5", B="37.5", C="50")

        first = resolve("77.77", SplitPolicy.PERCENTAGE, participants)
        second = resolve("77.77", SplitPolicy.PERCENTAGE, participants)

        assert first == second

    def test_shares_by_participant(self):
        """Shares can be looked up by participant id."""
        shares = resolve("9.00", SplitPolicy.EQUAL, people("A", "B", "C"))

        assert shares_by_participant(shares) == {
            "A": Decimal("3.00"),
            "B": Decimal("3.00"),
            "C": Decimal("3.00"),
        }
