"""Tests for memorial templates and template variable extraction."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from funeral_core.core.errors import InvalidStateTransitionError, ValidationError
from funeral_core.db.enums import TemplateCategory, TemplateStatus
from funeral_core.schemas.template import TemplateContent, TemplateCreate, TemplateSettings, TemplateUpdate
from funeral_core.services import template_service
from funeral_core.services.template_variables import extract_template_variables, find_unknown_variables


def _template(funeral_home_id="fh_test", name="Classic Program", html="<h1>{{decedent_name}}</h1>"):
    return TemplateCreate(
        funeral_home_id=funeral_home_id,
        name=name,
        category=TemplateCategory.SERVICE_PROGRAM,
        content=TemplateContent(html_template=html),
    )


# =============================================================================
# Variable extraction
# =============================================================================

def test_extract_variables_sorted_deduplicated_without_helpers():
    assert extract_template_variables("{{name}} {{name}} {{#if x}}{{y}}{{/if}}") == ["name", "y"]


def test_extract_variables_allows_whitespace_and_dotted_paths():
    content = "{{ decedent.first_name }} {{else}} {{ service_date}}"

    assert extract_template_variables(content) == ["decedent.first_name", "service_date"]


def test_extract_variables_empty_content():
    assert extract_template_variables("") == []
    assert extract_template_variables("<p>No placeholders</p>") == []


def test_unknown_variables_are_reported_by_root_name():
    assert find_unknown_variables(["decedent_name", "decedent_name.upper", "favorite_color"]) == [
        "favorite_color"
    ]


# =============================================================================
# Settings validation
# =============================================================================

def test_settings_reject_unknown_page_size():
    with pytest.raises(PydanticValidationError):
        TemplateSettings(page_size="tabloid")


def test_settings_normalize_case():
    settings = TemplateSettings(page_size="A4", orientation="Landscape", print_quality=600)

    assert settings.page_size == "a4"
    assert settings.orientation == "landscape"


# =============================================================================
# Versioned lifecycle
# =============================================================================

def test_create_template_starts_as_draft_with_variables(db):
    template = template_service.create_template(
        db, _template(html="<h1>{{decedent_name}}</h1><p>{{service_date}}</p>"), "staff_1"
    )

    assert template.version == 1
    assert template.status == TemplateStatus.DRAFT.value
    assert template.variables == ["decedent_name", "service_date"]
    assert template.page_size == "letter"
    assert template.business_key.startswith("TPL_")


def test_content_update_rederives_variables(db):
    v1 = template_service.create_template(db, _template(), "staff_1")

    v2 = template_service.update_template(
        db,
        v1.business_key,
        TemplateUpdate(content=TemplateContent(html_template="<p>{{obituary}}</p>"), reason="New layout"),
        "staff_2",
    )

    assert v2.version == 2
    assert v2.variables == ["obituary"]
    assert v2.name == "Classic Program"
    old = template_service.get_template_version(db, v1.business_key, 1)
    assert old.variables == ["decedent_name"]
    assert old.is_current is False


def test_empty_update_is_rejected(db):
    template = template_service.create_template(db, _template(), "staff_1")

    with pytest.raises(ValidationError):
        template_service.update_template(db, template.business_key, TemplateUpdate(), "staff_1")


def test_status_flow(db):
    template = template_service.create_template(db, _template(), "staff_1")
    key = template.business_key

    active = template_service.change_template_status(db, key, TemplateStatus.ACTIVE, "manager_1")
    assert active.status == TemplateStatus.ACTIVE.value
    assert "manager_1" in active.reason

    with pytest.raises(InvalidStateTransitionError):
        template_service.change_template_status(db, key, TemplateStatus.DRAFT, "manager_1")

    template_service.change_template_status(db, key, TemplateStatus.DEPRECATED, "manager_1")
    with pytest.raises(InvalidStateTransitionError):
        template_service.update_template(db, key, TemplateUpdate(name="Renamed"), "staff_1")

    reactivated = template_service.change_template_status(db, key, TemplateStatus.ACTIVE, "manager_1")
    assert reactivated.version == 4
    assert [v.status for v in template_service.get_template_history(db, key)] == [
        "active", "deprecated", "active", "draft",
    ]


def test_list_includes_system_templates_and_skips_deprecated(db):
    own = template_service.create_template(db, _template(name="B Own"), "staff_1")
    system = template_service.create_template(db, _template(funeral_home_id=None, name="A System"), "admin")
    other = template_service.create_template(db, _template(funeral_home_id="fh_other", name="C Other"), "staff_9")
    old = template_service.create_template(db, _template(name="D Old"), "staff_1")
    template_service.change_template_status(db, old.business_key, TemplateStatus.DEPRECATED, "staff_1")

    listed = template_service.list_templates(db, "fh_test")

    assert [t.business_key for t in listed] == [system.business_key, own.business_key]
    assert other.business_key not in {t.business_key for t in listed}

    template_service.change_template_status(db, own.business_key, TemplateStatus.ACTIVE, "staff_1")
    active_only = template_service.list_templates(db, "fh_test", include_drafts=False)
    assert [t.business_key for t in active_only] == [own.business_key]


def test_pending_templates(db):
    draft = template_service.create_template(db, _template(), "staff_1")
    approved = template_service.create_template(db, _template(name="Approved"), "staff_1")
    template_service.change_template_status(db, approved.business_key, TemplateStatus.ACTIVE, "staff_1")
    system_draft = template_service.create_template(db, _template(funeral_home_id=None), "admin")

    assert [t.business_key for t in template_service.list_pending_templates(db, "fh_test")] == [
        draft.business_key
    ]
    assert [t.business_key for t in template_service.list_pending_templates(db, None)] == [
        system_draft.business_key
    ]


def test_retired_template_disappears_from_lists(db):
    template = template_service.create_template(db, _template(), "staff_1")

    template_service.retire_template(db, template.business_key, "staff_1")

    assert template_service.list_templates(db, "fh_test") == []
    assert len(template_service.get_template_history(db, template.business_key)) == 1
