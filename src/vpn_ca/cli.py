"""
Command line interface

    vpn-ca init   [--name NAME]
    vpn-ca server NAME [--not-after RFC3339|CA] [--inherit-ca-expiry]
    vpn-ca client NAME [--not-after RFC3339|CA] [--inherit-ca-expiry]
    vpn-ca verify PATH
    vpn-ca show   PATH

This is the only place where errors become an exit status.
"""

from pathlib import Path
from typing import Optional

import click

from . import __version__, config, signer, utils, validity
from .authority import CertificateIssuer, RootCAManager, load_ca, load_ca_certificate, load_certificate
from .errors import VpnCaError
from .keygen import KeyGenerator
from .models import IssuedCertificate, Role


class _CaGroup(click.Group):
    """Command group translating CA errors into one message and exit status 1"""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except VpnCaError as e:
            utils.print_error(f"ERROR: {e.step or ctx.info_name}: {e} [{e.kind}]")
            ctx.exit(1)


def _report(issued: IssuedCertificate) -> None:
    utils.print_success(f"Key written: {issued.key_path}")
    utils.print_success(f"Certificate written: {issued.cert_path}")
    utils.display_cert_info(issued.certificate)


@click.group(cls=_CaGroup)
@click.option("--ca-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help=f"CA root directory [default: ${config.CA_DIR_ENV} or the current directory]")
@click.option("-v", "--verbose", is_flag=True, help="Log debug details on stderr.")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Also append log records to this file.")
@click.version_option(__version__, prog_name="vpn-ca")
@click.pass_context
def cli(ctx: click.Context, ca_dir: Optional[Path], verbose: bool, log_file: Optional[Path]) -> None:
    """Minimal offline Certificate Authority for a closed network."""
    utils.setup_logging("DEBUG" if verbose else config.LOG_LEVEL, log_file)
    ctx.obj = config.get_ca_dir(str(ca_dir) if ca_dir else None)


# ============================================
# 👑 ROOT CA
# ============================================

@cli.command("init")
@click.option("--name", default=config.DEFAULT_CA_NAME, show_default=True, help="Common name of the CA.")
@click.pass_obj
def init_cmd(ca_dir: Path, name: str) -> None:
    """Generate the CA key (ca.key) and self-signed certificate (ca.crt)."""
    utils.print_header(f"{config.CLI_SYMBOLS['root']} Creating the root CA")
    utils.ensure_directory(ca_dir)

    manager = RootCAManager(KeyGenerator(show_progress=True))
    _report(manager.create_root_ca(ca_dir, name))


# ============================================
# 📜 LEAF CERTIFICATES
# ============================================

def _issue(ca_dir: Path, role: Role, name: str, not_after: Optional[str], inherit: bool) -> None:
    utils.print_header(f"{config.CLI_SYMBOLS[role.value]} Issuing {role.value} certificate for {name}")

    requested = validity.parse_expiration_request(not_after, inherit)
    ca_state = load_ca(ca_dir)
    utils.ensure_directory(config.get_role_dir(ca_dir, role.value))

    issuer = CertificateIssuer(ca_state, KeyGenerator(show_progress=True))
    _report(issuer.issue(role, name, requested))


_not_after_option = click.option(
    "--not-after", default=None,
    help="Expiration as RFC 3339 (ex: 2027-01-31T12:00:00Z), or CA to match the CA [default: one year]."
)
_inherit_option = click.option(
    "--inherit-ca-expiry", "inherit", is_flag=True, help="Expire together with the CA."
)


@cli.command("server")
@click.argument("name")
@_not_after_option
@_inherit_option
@click.pass_obj
def server_cmd(ca_dir: Path, name: str, not_after: Optional[str], inherit: bool) -> None:
    """Generate a server key and certificate (DNS name = NAME)."""
    _issue(ca_dir, Role.SERVER, name, not_after, inherit)


@cli.command("client")
@click.argument("name")
@_not_after_option
@_inherit_option
@click.pass_obj
def client_cmd(ca_dir: Path, name: str, not_after: Optional[str], inherit: bool) -> None:
    """Generate a client key and certificate."""
    _issue(ca_dir, Role.CLIENT, name, not_after, inherit)


# ============================================
# 🔍 INSPECTION
# ============================================

@cli.command("verify")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def verify_cmd(ca_dir: Path, path: Path) -> None:
    """Check that the certificate at PATH was issued by this CA."""
    ca_cert = load_ca_certificate(ca_dir)
    certificate = load_certificate(path)

    if not signer.verify_issued(ca_cert, certificate):
        utils.print_error(f"{path}: not issued by {ca_cert.subject.rfc4514_string()}")
        raise click.exceptions.Exit(1)

    utils.print_success(f"{path}: issued by {ca_cert.subject.rfc4514_string()}")


@cli.command("show")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def show_cmd(path: Path) -> None:
    """Display the certificate at PATH."""
    utils.display_cert_info(load_certificate(path))


def main() -> None:
    """Console script entry point"""
    cli(prog_name="vpn-ca")


if __name__ == "__main__":
    main()
