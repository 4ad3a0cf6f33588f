"""Tests for Candidate and ResourceSet models."""

from __future__ import annotations

import pytest

from awssweep.models.candidate import Candidate
from awssweep.models.resource_set import ResourceSet


class TestCandidate:
    """Test suite for Candidate model."""

    def test_create_candidate_with_defaults(self) -> None:
        candidate = Candidate(id="i-123")

        assert candidate.id == "i-123"
        assert candidate.tags == {}
        assert candidate.attrs == {}

    @pytest.mark.parametrize("bad_id", ["", None, 42])
    def test_candidate_requires_non_empty_string_id(self, bad_id) -> None:
        with pytest.raises(ValueError, match="non-empty string"):
            Candidate(id=bad_id)


class TestResourceSet:
    """Test suite for ResourceSet model."""

    def test_build_keeps_discovery_order_and_alignment(self) -> None:
        candidates = [
            Candidate(id="i-2", tags={"env": "dev"}),
            Candidate(id="i-1", attrs={"state": "running"}),
        ]

        resource_set = ResourceSet.build("aws_instance", candidates)

        assert resource_set.type == "aws_instance"
        assert resource_set.ids == ["i-2", "i-1"]
        assert resource_set.tags == [{"env": "dev"}, {}]
        assert resource_set.attrs == [{}, {"state": "running"}]
        assert resource_set.validate() is True

    def test_build_copies_candidate_maps(self) -> None:
        candidate = Candidate(id="i-1", tags={"env": "dev"})
        resource_set = ResourceSet.build("aws_instance", [candidate])

        candidate.tags["env"] = "prod"

        assert resource_set.tags[0] == {"env": "dev"}

    def test_empty_set_is_falsy(self) -> None:
        resource_set = ResourceSet.build("aws_instance", [])

        assert not resource_set
        assert len(resource_set) == 0

    def test_candidates_round_trip(self) -> None:
        resource_set = ResourceSet(type="aws_vpc", ids=["vpc-1"], tags=[{"a": "b"}], attrs=[{"cidr_block": "10.0.0.0/16"}])

        candidates = list(resource_set.candidates())

        assert candidates == [Candidate(id="vpc-1", tags={"a": "b"}, attrs={"cidr_block": "10.0.0.0/16"})]

    def test_validate_rejects_misaligned_set(self) -> None:
        resource_set = ResourceSet(type="aws_vpc", ids=["vpc-1", "vpc-2"], tags=[{}], attrs=[{}, {}])

        with pytest.raises(ValueError, match="equal length"):
            resource_set.validate()
