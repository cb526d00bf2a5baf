import pytest

from journald_semistruct.baseline import build_baseline, extra_attributes
from journald_semistruct.config import LogOptions, SessionContext
from journald_semistruct.errors import ConfigurationError
from journald_semistruct.tag import DEFAULT_TAG_TEMPLATE, parse_log_tag


def test_identity_fields(context):
    baseline = build_baseline(context, LogOptions())
    assert dict(baseline) == {
        "CONTAINER_ID": "0123456789ab",
        "CONTAINER_ID_FULL": "0123456789abcdef0123456789abcdef",
        "CONTAINER_NAME": "web",
        "CONTAINER_TAG": "0123456789ab",
    }


def test_baseline_is_read_only(context):
    baseline = build_baseline(context, LogOptions())
    with pytest.raises(TypeError):
        baseline["CONTAINER_NAME"] = "other"


def test_selected_labels_and_env_are_upper_cased(context):
    baseline = build_baseline(context, LogOptions(labels="com.example.team,missing", env="EMPTY,UNSET"))
    assert baseline["COM.EXAMPLE.TEAM"] == "core"
    assert baseline["EMPTY"] == ""
    assert "MISSING" not in baseline
    assert "UNSET" not in baseline


def test_env_wins_over_label_with_same_key(context):
    attrs = extra_attributes(context, LogOptions(labels="stage", env="STAGE"), str.upper)
    assert attrs == {"STAGE": "prod"}


def test_extra_attributes_without_key_mod(context):
    attrs = extra_attributes(context, LogOptions(labels="com.example.team"))
    assert attrs == {"com.example.team": "core"}


def test_no_extra_attributes_without_options(context):
    assert extra_attributes(context, LogOptions()) == {}


def test_default_tag_is_short_id(context):
    assert DEFAULT_TAG_TEMPLATE == "{{ id }}"
    assert parse_log_tag(context, LogOptions()) == "0123456789ab"


@pytest.mark.parametrize(
    "template, expected",
    [
        ("{{ name }}/{{ id }}", "web/0123456789ab"),
        ("{{ image_name }}", "nginx:1.25"),
        ("{{ daemon_name }}-{{ image_id }}", "dockerd-fedcba987654"),
        ("static", "static"),
    ],
)
def test_tag_templates(context, template, expected):
    assert parse_log_tag(context, LogOptions(tag=template)) == expected


@pytest.mark.parametrize("template", ["{{ nope }}", "{{ name", "{% if %}"])
def test_bad_tag_templates(context, template):
    with pytest.raises(ConfigurationError, match="invalid tag template"):
        parse_log_tag(context, LogOptions(tag=template))


def test_tag_lands_in_baseline():
    context = SessionContext(container_id="abcdef", container_name="/db")
    baseline = build_baseline(context, LogOptions(tag="{{ name }}"))
    assert baseline["CONTAINER_TAG"] == "db"
