"""Tests for gadget descriptor and instance models."""

import pytest
from fakes import make_descriptor

from ig_mcp_server.gadgets.types import GadgetDescriptor, GadgetInstance


class TestGadgetDescriptor:
    """Test GadgetDescriptor."""

    def test_decode_metadata(self) -> None:
        """Embedded YAML metadata is decoded."""
        metadata = make_descriptor().decode_metadata()
        assert metadata.name == "trace dns"
        assert metadata.description == "Trace DNS requests and responses"

    def test_decode_invalid_metadata(self) -> None:
        """Metadata that is not a mapping is rejected."""
        descriptor = make_descriptor(metadata="- just\n- a list\n")
        with pytest.raises(ValueError, match="unmarshalling gadget metadata"):
            descriptor.decode_metadata()

    def test_default_params(self) -> None:
        """Defaults are keyed by prefix+key."""
        assert make_descriptor().default_params() == {
            "operator.KubeManager.namespace": "",
            "operator.oci.ebpf.map-fetch-interval": "1s",
        }

    def test_field_annotations(self) -> None:
        """Field description and possible values come from annotations."""
        fields = make_descriptor().data_sources[0].fields
        assert fields[1].description == "Query or response"
        assert fields[1].possible_values == "Q, R"
        assert fields[0].possible_values == ""

    def test_json_round_trip_uses_wire_keys(self) -> None:
        """Serialization uses camelCase keys and reads back equal."""
        descriptor = make_descriptor()
        data = descriptor.to_json_dict()
        assert "imageName" in data
        assert "dataSources" in data
        assert GadgetDescriptor.model_validate(data) == descriptor


class TestGadgetInstance:
    """Test GadgetInstance."""

    def test_to_json_dict(self) -> None:
        """All fields are present when set."""
        instance = GadgetInstance(
            id="abc",
            gadget_image="trace_exec:latest",
            params='a="1"',
            created_by="ig-mcp-server",
            started_at="2025-01-01T00:00:00Z",
        )
        assert instance.to_json_dict() == {
            "id": "abc",
            "gadgetImage": "trace_exec:latest",
            "params": 'a="1"',
            "createdBy": "ig-mcp-server",
            "startedAt": "2025-01-01T00:00:00Z",
        }
