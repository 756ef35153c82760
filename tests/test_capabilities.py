import pytest

from apiserverlib.capabilities import (
    ALLOW_ALL_CAPABILITIES,
    Capabilities,
    Container,
    DefaultCapabilities,
    SecurityContext,
)
from apiserverlib.field import FieldPath


def _container(caps):
    return Container(security_context=SecurityContext(capabilities=caps))


GENERATE_ADD_CASES = {
    "no required, no container requests": ([], [], None, None),
    "no required, no container requests, non-nil": ([], [], Capabilities(), Capabilities()),
    "required, no container requests": (["foo"], [], None, Capabilities(add=["foo"])),
    "required, container requests add required": (
        ["foo"], [], Capabilities(add=["foo"]), Capabilities(add=["foo"]),
    ),
    "multiple required, container requests add required": (
        ["foo", "bar", "baz"], [], Capabilities(add=["foo"]),
        Capabilities(add=["bar", "baz", "foo"]),
    ),
    "required, container requests add non-required": (
        ["foo"], [], Capabilities(add=["bar"]), Capabilities(add=["bar", "foo"]),
    ),
    "generation does not mutate unnecessarily": (
        ["foo", "bar"], [], Capabilities(add=["foo", "foo", "bar", "baz"]),
        Capabilities(add=["foo", "foo", "bar", "baz"]),
    ),
    "generation dedupes": (
        ["foo", "bar"], [], Capabilities(add=["foo", "baz"]),
        Capabilities(add=["bar", "baz", "foo"]),
    ),
    "generation is case sensitive - will not dedupe": (
        ["foo"], [], Capabilities(add=["FOO"]), Capabilities(add=["FOO", "foo"]),
    ),
}


@pytest.mark.parametrize("name", sorted(GENERATE_ADD_CASES))
def test_generate_adds(name):
    default_add, required_drop, container_caps, expected = GENERATE_ADD_CASES[name]
    strategy = DefaultCapabilities(default_add, required_drop, None)
    assert strategy.generate(None, _container(container_caps)) == expected


GENERATE_DROP_CASES = {
    "no required, no container requests": ([], [], None, None),
    "no required, no container requests, non-nil": ([], [], Capabilities(), Capabilities()),
    "required drops are defaulted": ([], ["foo"], None, Capabilities(drop=["foo"])),
    "required drops are defaulted when making container requests": (
        [], ["baz"], Capabilities(drop=["foo", "bar"]),
        Capabilities(drop=["bar", "baz", "foo"]),
    ),
    "required drops do not mutate unnecessarily": (
        [], ["baz"], Capabilities(drop=["foo", "bar", "baz"]),
        Capabilities(drop=["foo", "bar", "baz"]),
    ),
    "can drop a required add": (
        ["foo"], [], Capabilities(drop=["foo"]), Capabilities(drop=["foo"]),
    ),
    "can drop non-required add": (
        ["foo"], [], Capabilities(drop=["bar"]), Capabilities(add=["foo"], drop=["bar"]),
    ),
    "defaulting adds and drops, dropping a required add": (
        ["foo", "bar", "baz"], ["abc"], Capabilities(drop=["foo"]),
        Capabilities(add=["bar", "baz"], drop=["abc", "foo"]),
    ),
    "generation dedupes": (
        [], ["baz", "foo"], Capabilities(drop=["bar", "foo"]),
        Capabilities(drop=["bar", "baz", "foo"]),
    ),
    "generation is case sensitive - will not dedupe": (
        [], ["bar"], Capabilities(drop=["BAR"]), Capabilities(drop=["BAR", "bar"]),
    ),
}


@pytest.mark.parametrize("name", sorted(GENERATE_DROP_CASES))
def test_generate_drops(name):
    default_add, required_drop, container_caps, expected = GENERATE_DROP_CASES[name]
    strategy = DefaultCapabilities(default_add, required_drop, None)
    assert strategy.generate(None, _container(container_caps)) == expected


def test_generate_returns_original_object_when_unchanged():
    caps = Capabilities(add=["foo", "foo", "bar", "baz"])
    strategy = DefaultCapabilities(["foo", "bar"], [], None)
    assert strategy.generate(None, _container(caps)) is caps


def test_generate_without_security_context():
    strategy = DefaultCapabilities(["foo"], ["bar"], None)
    assert strategy.generate(None, Container()) == Capabilities(add=["foo"], drop=["bar"])


VALIDATE_ADD_CASES = {
    "no required, no allowed, no container requests": ([], [], [], None, True),
    "no required, allowed, no container requests": ([], [], ["foo"], None, True),
    "required, no allowed, no container requests": (["foo"], [], [], None, False),
    "required, no allowed, container requests valid": (
        ["foo"], [], [], Capabilities(add=["foo"]), True,
    ),
    "required, no allowed, container requests invalid": (
        ["foo"], [], [], Capabilities(add=["bar"]), False,
    ),
    "no required, allowed, container requests valid": (
        [], [], ["foo"], Capabilities(add=["foo"]), True,
    ),
    "no required, all allowed, container requests valid": (
        [], [], [ALLOW_ALL_CAPABILITIES], Capabilities(add=["foo"]), True,
    ),
    "no required, allowed, container requests invalid": (
        [], [], ["foo"], Capabilities(add=["bar"]), False,
    ),
    "required, allowed, container requests valid required": (
        ["foo"], [], ["bar"], Capabilities(add=["foo"]), True,
    ),
    "required, allowed, container requests valid allowed": (
        ["foo"], [], ["bar"], Capabilities(add=["bar"]), True,
    ),
    "required, allowed, container requests invalid": (
        ["foo"], [], ["bar"], Capabilities(add=["baz"]), False,
    ),
    "validation is case sensitive": (
        ["foo"], [], [], Capabilities(add=["FOO"]), False,
    ),
}


@pytest.mark.parametrize("name", sorted(VALIDATE_ADD_CASES))
def test_validate_adds(name):
    default_add, required_drop, allowed, caps, should_pass = VALIDATE_ADD_CASES[name]
    strategy = DefaultCapabilities(default_add, required_drop, allowed)
    errors = strategy.validate(None, None, None, caps)
    if should_pass:
        assert errors == []
    else:
        assert len(errors) > 0


VALIDATE_DROP_CASES = {
    "no required, no container requests": ([], [], None, True),
    "required, no container requests": ([], ["foo"], None, False),
    "required, container requests valid": ([], ["foo"], Capabilities(drop=["foo"]), True),
    "required, container requests invalid": ([], ["foo"], Capabilities(drop=["bar"]), False),
    "validation is case sensitive": ([], ["foo"], Capabilities(drop=["FOO"]), False),
}


@pytest.mark.parametrize("name", sorted(VALIDATE_DROP_CASES))
def test_validate_drops(name):
    default_add, required_drop, caps, should_pass = VALIDATE_DROP_CASES[name]
    strategy = DefaultCapabilities(default_add, required_drop, None)
    errors = strategy.validate(None, None, None, caps)
    if should_pass:
        assert errors == []
    else:
        assert len(errors) > 0


def test_validate_error_details():
    strategy = DefaultCapabilities(["foo"], ["abc"], None)
    errors = strategy.validate(
        FieldPath("spec"), None, None, Capabilities(add=["bar"], drop=[])
    )
    assert [(e.field, e.detail) for e in errors] == [
        ("spec.capabilities.add", "capability may not be added"),
        ("spec.capabilities.drop", "abc is required to be dropped but was not found"),
    ]


def test_validate_missing_capabilities_error_field():
    strategy = DefaultCapabilities([], ["abc"], None)
    errors = strategy.validate(None, None, None, None)
    assert len(errors) == 1
    assert errors[0].field == "capabilities"
    assert errors[0].detail == "required capabilities are not set on the securityContext"