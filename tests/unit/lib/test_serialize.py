"""Tests for template serialization."""

import pytest

from stackpilot.lib.serialize import deserialize_structure, to_yaml


@pytest.mark.unit
class TestToYaml:
    """Tests for to_yaml."""

    def test_key_order_is_preserved(self) -> None:
        """Test that templates are emitted in document order."""
        text = to_yaml({"Resources": {}, "AWSTemplateFormatVersion": "2010-09-09"})
        assert text.index("Resources") < text.index("AWSTemplateFormatVersion")

    def test_round_trips_through_deserialize(self) -> None:
        """Test that emitted YAML loads back to the same document."""
        template = {
            "AWSTemplateFormatVersion": "2010-09-09",
            "Resources": {
                "Topic": {
                    "Type": "AWS::SNS::Topic",
                    "Properties": {"Tags": [{"Key": "a", "Value": "1"}]},
                }
            },
        }
        assert deserialize_structure(to_yaml(template)) == template


@pytest.mark.unit
class TestDeserializeStructure:
    """Tests for deserialize_structure."""

    def test_json_body(self) -> None:
        """Test that JSON bodies load as YAML."""
        assert deserialize_structure('{"Resources": {"A": {"Type": "T"}}}') == {
            "Resources": {"A": {"Type": "T"}}
        }

    def test_parsed_body_is_returned(self) -> None:
        """Test that already-parsed bodies pass through."""
        body = {"Resources": {}}
        assert deserialize_structure(body) is body

    @pytest.mark.parametrize("body", [None, "", "# only a comment\n"])
    def test_empty_bodies(self, body: str | None) -> None:
        """Test that missing or empty bodies are an empty template."""
        assert deserialize_structure(body) == {}

    def test_dates_stay_strings(self) -> None:
        """Test that the template format version is not parsed as a date."""
        template = deserialize_structure("AWSTemplateFormatVersion: 2010-09-09\n")
        assert template["AWSTemplateFormatVersion"] == "2010-09-09"

    def test_short_form_intrinsics(self) -> None:
        """Test that short-form tags load into their long form."""
        body = (
            "Resources:\n"
            "  Fn:\n"
            "    Type: AWS::Lambda::Function\n"
            "    Properties:\n"
            "      Role: !GetAtt Role.Arn\n"
            "      FunctionName: !Sub '${AWS::StackName}-fn'\n"
            "      Handler: !Ref Handler\n"
            "      Layers: !Split [',', !Ref LayerList]\n"
        )

        props = deserialize_structure(body)["Resources"]["Fn"]["Properties"]

        assert props["Role"] == {"Fn::GetAtt": ["Role", "Arn"]}
        assert props["FunctionName"] == {"Fn::Sub": "${AWS::StackName}-fn"}
        assert props["Handler"] == {"Ref": "Handler"}
        assert props["Layers"] == {"Fn::Split": [",", {"Ref": "LayerList"}]}

    def test_non_mapping_body_raises(self) -> None:
        """Test that a body that is not a mapping is rejected."""
        with pytest.raises(ValueError, match="mapping"):
            deserialize_structure("- a\n- b\n")
