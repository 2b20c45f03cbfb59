"""Name validation and certificate template unit tests."""

import dataclasses
from datetime import timedelta

import pytest

from vpn_ca import config
from vpn_ca.errors import InvalidNameError
from vpn_ca.models import ExtKeyUsage, KeyUsage, Role, ServerTemplate
from vpn_ca.templates import (
    client_template,
    root_template,
    server_template,
    validate_common_name,
)


class TestCommonNameValidation:
    """Test the common name rule."""

    @pytest.mark.parametrize("name", ["vpn-node-01.internal", "gw1", "A.b-C.0", "x"])
    def test_accepts(self, name):
        assert validate_common_name(name) == name

    @pytest.mark.parametrize("name", [
        "../etc/passwd",
        "",
        "node one",
        "a/b",
        "a\\b",
        "gw1\n",
        "node_1",
        "nœud",
        "gw1;rm",
    ])
    def test_rejects(self, name):
        with pytest.raises(InvalidNameError):
            validate_common_name(name)

    def test_longest_name(self):
        name = "a" * 64
        assert validate_common_name(name) == name

    def test_rejects_long_name(self):
        """Test that names over 64 characters, the commonName limit, are refused."""
        with pytest.raises(InvalidNameError) as exc_info:
            validate_common_name("a" * 65)
        assert exc_info.value.field == "common_name"

    def test_rejects_non_string(self):
        with pytest.raises(InvalidNameError):
            validate_common_name(None)


class TestRootTemplate:
    """Test the root CA template."""

    def test_fields(self, fixed_now):
        not_after = fixed_now + timedelta(days=5 * 365)
        template = root_template("Root CA", not_after, fixed_now)

        assert template.role is Role.ROOT
        assert template.is_ca
        assert template.path_len_zero
        assert template.key_usage == {KeyUsage.DIGITAL_SIGNATURE, KeyUsage.KEY_CERT_SIGN}
        assert template.ext_key_usage == {ExtKeyUsage.SERVER_AUTH, ExtKeyUsage.CLIENT_AUTH}
        assert not hasattr(template, "dns_names")
        assert template.not_after == not_after

    def test_name_with_space_is_allowed(self, fixed_now):
        """Test that the root name, never used in a path, may contain spaces."""
        template = root_template(config.DEFAULT_CA_NAME, fixed_now + timedelta(days=1), fixed_now)
        assert template.common_name == "Root CA"

    def test_long_name(self, fixed_now):
        with pytest.raises(InvalidNameError):
            root_template("A" * 65, fixed_now + timedelta(days=1), fixed_now)

    def test_empty_name(self, fixed_now):
        with pytest.raises(InvalidNameError):
            root_template("  ", fixed_now + timedelta(days=1), fixed_now)


class TestLeafTemplates:
    """Test the server and client templates."""

    def test_server_fields(self, fixed_now):
        template = server_template("gw1", fixed_now + timedelta(days=365), fixed_now)

        assert template.role is Role.SERVER
        assert not template.is_ca
        assert not template.path_len_zero
        assert template.key_usage == {KeyUsage.DIGITAL_SIGNATURE, KeyUsage.KEY_ENCIPHERMENT}
        assert template.ext_key_usage == {ExtKeyUsage.SERVER_AUTH}
        assert template.dns_names == ("gw1",)

    def test_client_fields(self, fixed_now):
        template = client_template("laptop-7", fixed_now + timedelta(days=365), fixed_now)

        assert template.role is Role.CLIENT
        assert not template.is_ca
        assert template.key_usage == {KeyUsage.DIGITAL_SIGNATURE}
        assert template.ext_key_usage == {ExtKeyUsage.CLIENT_AUTH}
        assert not hasattr(template, "dns_names")

    @pytest.mark.parametrize("build", [server_template, client_template])
    def test_invalid_name(self, build, fixed_now):
        with pytest.raises(InvalidNameError):
            build("../etc/passwd", fixed_now + timedelta(days=1), fixed_now)

    @pytest.mark.parametrize("build", [root_template, server_template, client_template])
    def test_clock_skew(self, build, fixed_now):
        """Test that notBefore is backdated by five minutes."""
        template = build("gw1", fixed_now + timedelta(days=1), fixed_now)
        assert template.not_before == fixed_now - timedelta(minutes=5)

    def test_serials_are_fresh(self, fixed_now):
        not_after = fixed_now + timedelta(days=1)
        serials = {server_template("gw1", not_after, fixed_now).serial_number for _ in range(50)}
        assert len(serials) == 50
        assert all(0 <= serial < 2 ** 128 for serial in serials)


class TestTemplateInvariants:
    """Test the invariants held by the template types."""

    def test_not_after_must_follow_not_before(self, fixed_now):
        with pytest.raises(ValueError):
            ServerTemplate(
                common_name="gw1",
                serial_number=1,
                not_before=fixed_now,
                not_after=fixed_now,
                dns_names=("gw1",),
            )

    def test_negative_serial(self, fixed_now):
        with pytest.raises(ValueError):
            ServerTemplate(
                common_name="gw1",
                serial_number=-1,
                not_before=fixed_now,
                not_after=fixed_now + timedelta(days=1),
            )

    def test_templates_are_immutable(self, fixed_now):
        template = client_template("gw1", fixed_now + timedelta(days=1), fixed_now)
        with pytest.raises(dataclasses.FrozenInstanceError):
            template.common_name = "other"
