"""Tests for CloudFormation template discovery."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from short_config import ConfigParseError
from short_config import find_templates
from short_config import read_template

TEMPLATE = """\
AWSTemplateFormatVersion: 2010-09-09
Description: Api stack
Parameters:
  Stage:
    Type: String
Resources:
  Bucket:
    Type: AWS::S3::Bucket
    Properties:
      BucketName: !Sub "${AWS::StackName}-${Stage}"
      Tags:
        - Key: stage
          Value: !Ref Stage
Outputs:
  Arn:
    Value: !GetAtt [Bucket, Arn]
"""


class TestTemplates:
    """Test template reading and discovery."""

    @pytest.fixture
    def tmp(self):
        with TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_read_template_with_short_form_tags(self, tmp):
        path = tmp / "api.yaml"
        path.write_text(TEMPLATE)
        template = read_template(path)
        assert template.path == path
        assert template.format_version == "2010-09-09"
        assert template.description == "Api stack"

    def test_plain_yaml_is_not_a_template(self, tmp):
        path = tmp / "short.yml"
        path.write_text("setups: []\n")
        assert read_template(path) is None

    def test_version_only_in_a_value_is_not_a_template(self, tmp):
        path = tmp / "notes.yml"
        path.write_text("release: '2010-09-09'\n")
        assert read_template(path) is None

    def test_malformed_template(self, tmp):
        path = tmp / "broken.yaml"
        path.write_text("AWSTemplateFormatVersion: '2010-09-09'\nResources: [unclosed\n")
        with pytest.raises(ConfigParseError):
            read_template(path)

    def test_find_templates(self, tmp):
        (tmp / "b").mkdir()
        (tmp / "b" / "api.yml").write_text(TEMPLATE)
        (tmp / "a.yaml").write_text(TEMPLATE)
        (tmp / "short.yml").write_text("setups: []\n")
        (tmp / "readme.txt").write_text("AWSTemplateFormatVersion: 2010-09-09\n")

        templates, errors = find_templates(tmp)
        assert [t.path for t in templates] == [tmp / "a.yaml", tmp / "b" / "api.yml"]
        assert errors == []

    def test_hidden_directories_skipped(self, tmp):
        (tmp / ".aws-sam").mkdir()
        (tmp / ".aws-sam" / "built.yaml").write_text(TEMPLATE)
        templates, _ = find_templates(tmp)
        assert templates == []

    def test_errors_collected(self, tmp):
        (tmp / "broken.yaml").write_text("AWSTemplateFormatVersion: '2010-09-09'\nResources: [unclosed\n")
        (tmp / "api.yaml").write_text(TEMPLATE)

        templates, errors = find_templates(tmp)
        assert [t.path.name for t in templates] == ["api.yaml"]
        assert len(errors) == 1

    def test_missing_directory(self, tmp):
        assert find_templates(tmp / "nope") == ([], [])
