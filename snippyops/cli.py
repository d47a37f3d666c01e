"""Main CLI entry point for snippyops.

snippyops deploys the Snippy API (systemd service, docker compose stack and
PostgreSQL migrations) and provisions its SSL material: self-signed
certificates for the API and the database, Let's Encrypt certificates for
production, and the cron job that keeps them renewed.
"""

import os
import shutil
from typing import Any, Dict, Optional

import click

from snippyops import __version__
from snippyops.utils.errors import ErrorHandler
from snippyops.utils.logging import setup_logging
from snippyops.utils.shell import CommandRunner


def _load_config(ctx: click.Context) -> Dict[str, Any]:
    from snippyops.config import ConfigManager

    return ConfigManager(ctx.obj["config_path"]).load_config()


def _runner(ctx: click.Context) -> CommandRunner:
    return CommandRunner(dry_run=ctx.obj["dry_run"], verbose=ctx.obj["verbose"])


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Show what would be done without executing")
@click.option("--log-file", help="Log to file in addition to console")
@click.option("--config", "config_path", help="Path to snippyops.yml")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    dry_run: bool,
    log_file: Optional[str],
    config_path: Optional[str],
) -> None:
    """snippyops - Snippy API deployment and SSL provisioning tool.

    Deploys the API on its server, runs database migrations, and creates,
    requests and renews the certificates used by the API and PostgreSQL.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["dry_run"] = dry_run
    ctx.obj["log_file"] = log_file
    ctx.obj["config_path"] = config_path
    ctx.obj["error_handler"] = ErrorHandler(verbose=verbose)

    setup_logging(verbose=verbose, log_file=log_file)


@cli.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.pass_context
def deploy(ctx: click.Context) -> None:
    """Deploy the Snippy API."""
    pass


@deploy.command("server")
@click.option("--deploy-dir", help="Override the deployment directory")
@click.pass_context
def deploy_server(ctx: click.Context, deploy_dir: Optional[str]) -> None:
    """Deploy on the server (run on the host, usually through ssh).

    Sets permissions, installs the systemd unit if missing, initializes SSL,
    restarts the service, applies migrations and checks health.
    """
    try:
        from snippyops.deploy import DeploymentOrchestrator

        config = _load_config(ctx)
        if deploy_dir:
            config["deploy"]["deploy_dir"] = deploy_dir

        orchestrator = DeploymentOrchestrator(config, runner=_runner(ctx), verbose=ctx.obj["verbose"])
        result = orchestrator.deploy_server()

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Server deployment")

    if not result.success:
        ctx.exit(1)


@deploy.command("local")
@click.option("--project-dir", default=".", help="Directory with docker-compose.yml and the API binary")
@click.pass_context
def deploy_local(ctx: click.Context, project_dir: str) -> None:
    """Start postgres and the API binary locally for development."""
    try:
        from snippyops.deploy import DeploymentOrchestrator

        config = _load_config(ctx)
        orchestrator = DeploymentOrchestrator(config, runner=_runner(ctx), verbose=ctx.obj["verbose"])
        result = orchestrator.deploy_local(project_dir=project_dir)

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Local deployment")

    if not result.success:
        ctx.exit(1)


@deploy.command("remote")
@click.option("--host", help="Server to deploy on (default: remote.host)")
@click.option("--user", help="ssh user (default: remote.user)")
@click.option("--port", type=int, help="ssh port (default: remote.port)")
@click.option("--key", "key_path", help="ssh private key")
@click.option("--command", "remote_command", default="snippyops deploy server", help="Command run on the server")
@click.pass_context
def deploy_remote(
    ctx: click.Context,
    host: Optional[str],
    user: Optional[str],
    port: Optional[int],
    key_path: Optional[str],
    remote_command: str,
) -> None:
    """Run the server deployment on a remote host over ssh."""
    try:
        from snippyops.deploy import RemoteDeployer

        remote_cfg = _load_config(ctx)["remote"]
        deployer = RemoteDeployer(
            host=host or remote_cfg["host"],
            runner=_runner(ctx),
            user=user or remote_cfg["user"],
            port=port or remote_cfg["port"],
            key_path=key_path or remote_cfg["key_path"],
        )

        click.echo(f"🚀 Deploying to {deployer.address}...")
        result = deployer.deploy(remote_command)
        if result.stdout:
            click.echo(result.stdout.rstrip())
        click.echo("✅ Remote deployment finished")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Remote deployment")


@deploy.command("migrate")
@click.pass_context
def deploy_migrate(ctx: click.Context) -> None:
    """Apply database migrations through the compose postgres service."""
    try:
        from snippyops.deploy import DeploymentOrchestrator

        config = _load_config(ctx)
        orchestrator = DeploymentOrchestrator(config, runner=_runner(ctx), verbose=ctx.obj["verbose"])
        report = orchestrator.run_migrations()

        click.echo(f"Applied: {len(report.applied)}, failed: {len(report.failed)}")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Database migrations")


@cli.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.pass_context
def ssl(ctx: click.Context) -> None:
    """Create, request and renew SSL certificates."""
    pass


@ssl.command("init")
@click.argument("domain", required=False, default="")
@click.argument("email", required=False, default="")
@click.argument("staging", required=False, default="false")
@click.option("--cert-dir", help="Directory for fullchain.pem/privkey.pem (default: ssl.cert_dir)")
@click.pass_context
def ssl_init(ctx: click.Context, domain: str, email: str, staging: str, cert_dir: Optional[str]) -> None:
    """Initialize the proxy certificate.

    Without DOMAIN (or with localhost) a self-signed certificate is created.
    With DOMAIN but no EMAIL a self-signed certificate for DOMAIN is created
    as fallback. Otherwise a Let's Encrypt certificate is requested; pass
    STAGING=true to use the staging server.
    """
    try:
        from snippyops.ssl import CertificateProvisioner, LetsEncryptManager, SSLManager

        ssl_cfg = _load_config(ctx)["ssl"]
        cert_dir = cert_dir or ssl_cfg["cert_dir"]

        if ctx.obj["dry_run"]:
            click.echo(f"DRY RUN: Would initialize SSL certificate in {cert_dir}")
            click.echo(f"DRY RUN: Domain: {domain or 'localhost'}, staging: {staging}")
            return

        runner = _runner(ctx)

        provisioner = CertificateProvisioner(
            cert_dir=cert_dir,
            ssl_manager=SSLManager(verbose=ctx.obj["verbose"]),
            letsencrypt_factory=lambda mail, use_staging, config_dir: LetsEncryptManager(
                email=mail,
                staging=use_staging,
                runner=runner,
                config_dir=config_dir,
                verbose=ctx.obj["verbose"],
            ),
            webroot=ssl_cfg["webroot"],
            organization=ssl_cfg["organization"],
        )
        provisioner.initialize(domain=domain, email=email, staging=staging)

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "SSL initialization")


def _generate_postgres(ctx: click.Context, output_dir: str) -> None:
    from snippyops.ssl import SSLManager

    click.echo("🔐 Setting up PostgreSQL SSL certificates...")

    if ctx.obj["dry_run"]:
        click.echo(f"DRY RUN: Would generate server.key, server.crt and root.crt in {output_dir}")
        return

    SSLManager(verbose=ctx.obj["verbose"]).generate_postgres_certificate(output_dir=output_dir)

    click.echo("✅ PostgreSQL SSL certificates generated successfully!")
    click.echo(f"📁 Certificates location: {output_dir}/")
    click.echo("   - server.key (private key)")
    click.echo("   - server.crt (server certificate)")
    click.echo("   - root.crt (root certificate for clients)")


def _generate_api(ctx: click.Context, domain: Optional[str], output_dir: str) -> None:
    from snippyops.ssl import SSLManager

    click.echo("🔐 Setting up API SSL certificates...")

    if domain is None:
        domain = click.prompt(
            "Enter your domain name (e.g., api.yourdomain.com)",
            default="",
            show_default=False,
        )
    if not domain.strip():
        click.echo("Using localhost as domain...")

    if ctx.obj["dry_run"]:
        click.echo(f"DRY RUN: Would generate api.key and api.crt for {domain.strip() or 'localhost'} in {output_dir}")
        return

    result = SSLManager(verbose=ctx.obj["verbose"]).generate_api_certificate(domain, output_dir=output_dir)

    click.echo("✅ API SSL certificates generated successfully!")
    click.echo(f"📁 Certificates location: {output_dir}/")
    click.echo("   - api.key (private key)")
    click.echo("   - api.crt (server certificate)")
    click.echo(f"   - Domain: {result['domain']}")


@ssl.command("setup-api")
@click.option("--domain", help="API domain (prompted if omitted; empty means localhost)")
@click.option("--output-dir", default=os.path.join("ssl", "api"), show_default=True, help="Output directory")
@click.pass_context
def ssl_setup_api(ctx: click.Context, domain: Optional[str], output_dir: str) -> None:
    """Generate the API private key and self-signed certificate."""
    try:
        _generate_api(ctx, domain, output_dir)
    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "API SSL setup")


@ssl.command("setup-postgres")
@click.option("--output-dir", default=os.path.join("ssl", "postgres"), show_default=True, help="Output directory")
@click.pass_context
def ssl_setup_postgres(ctx: click.Context, output_dir: str) -> None:
    """Generate the PostgreSQL server key and self-signed certificate."""
    try:
        _generate_postgres(ctx, output_dir)
    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "PostgreSQL SSL setup")


@ssl.command("setup")
@click.option("--domain", help="API domain (prompted if omitted; empty means localhost)")
@click.option("--gitignore", default=".gitignore", show_default=True, help=".gitignore to update")
@click.pass_context
def ssl_setup(ctx: click.Context, domain: Optional[str], gitignore: str) -> None:
    """Set up SSL for both PostgreSQL and the API."""
    try:
        from snippyops.utils.files import FileManager

        output_root = _load_config(ctx)["ssl"]["output_dir"]

        click.echo("🔐 Setting up SSL for Snippy Backend...")
        click.echo("This will configure SSL for both PostgreSQL and the Go API")

        click.echo("")
        click.echo("1️⃣ Setting up PostgreSQL SSL certificates...")
        _generate_postgres(ctx, os.path.join(output_root, "postgres"))

        click.echo("")
        click.echo("2️⃣ Setting up API SSL certificates...")
        _generate_api(ctx, domain, os.path.join(output_root, "api"))

        click.echo("")
        click.echo("3️⃣ Adding SSL certificates to .gitignore...")
        if ctx.obj["dry_run"]:
            click.echo(f"DRY RUN: Would add SSL rules to {gitignore}")
        else:
            FileManager(verbose=ctx.obj["verbose"]).ensure_gitignore_rules(gitignore)

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "SSL setup")

    click.echo("")
    click.echo("✅ SSL setup completed successfully!")
    click.echo("")
    click.echo("📋 Next steps:")
    click.echo("   1. Build your application: go build")
    click.echo("   2. Start with Docker: docker-compose up -d")
    click.echo("   3. Your API will be available at: https://yourdomain.com")
    click.echo("   4. PostgreSQL will use SSL connections")
    click.echo("")
    click.echo("🔒 Security notes:")
    click.echo("   - SSL certificates are excluded from Git")
    click.echo("   - Database connections now require SSL")
    click.echo("   - API serves on HTTPS (port 443)")
    click.echo("   - For production, consider using real certificates from Let's Encrypt")
    click.echo("")
    click.echo("🔧 To use Let's Encrypt instead of self-signed certificates:")
    click.echo("   snippyops ssl init <domain> <email>")


@ssl.command("renew")
@click.option("--domain", help="Domain to renew (default: renewal.domain)")
@click.option("--email", help="Registration email (default: LETSENCRYPT_EMAIL)")
@click.option("--force", is_flag=True, help="Renew even if the certificate is not due")
@click.pass_context
def ssl_renew(ctx: click.Context, domain: Optional[str], email: Optional[str], force: bool) -> None:
    """Renew the API certificate when it expires within the renewal window."""
    try:
        from snippyops.config.env import load_env_file, lookup
        from snippyops.deploy import ComposeRunner
        from snippyops.ssl import LetsEncryptManager, RenewalManager

        config = _load_config(ctx)
        if domain:
            config["renewal"]["domain"] = domain

        deploy_cfg = config["deploy"]
        env = load_env_file(os.path.join(deploy_cfg["deploy_dir"], deploy_cfg["env_file"]))

        runner = _runner(ctx)
        letsencrypt = LetsEncryptManager(
            email=email or lookup("LETSENCRYPT_EMAIL", env),
            runner=runner,
            verbose=ctx.obj["verbose"],
        )
        compose = ComposeRunner(runner, project_dir=deploy_cfg["deploy_dir"], legacy=deploy_cfg["compose_legacy"])

        RenewalManager(config, letsencrypt=letsencrypt, compose=compose).renew(force=force)

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "SSL certificate renewal")


@ssl.command("install-cron")
@click.option("--schedule", help="Cron schedule (default: renewal.schedule)")
@click.option("--log-file", "renewal_log", help="Renewal log (default: renewal.log_file)")
@click.option("--command", "renew_command", help="Renewal command (default: snippyops ssl renew)")
@click.pass_context
def ssl_install_cron(
    ctx: click.Context,
    schedule: Optional[str],
    renewal_log: Optional[str],
    renew_command: Optional[str],
) -> None:
    """Install the daily SSL renewal cron job (idempotent)."""
    try:
        from snippyops.scheduling import CronManager, format_schedule_description

        renewal_cfg = _load_config(ctx)["renewal"]
        schedule = schedule or renewal_cfg["schedule"]
        renewal_log = renewal_log or renewal_cfg["log_file"]
        if not renew_command:
            executable = shutil.which("snippyops") or "snippyops"
            renew_command = f"{executable} ssl renew"
            if ctx.obj["config_path"]:
                renew_command = f"{executable} --config {os.path.abspath(ctx.obj['config_path'])} ssl renew"

        click.echo("📅 Setting up SSL renewal cron job...")

        cron = CronManager(runner=_runner(ctx))
        installed = cron.install_renewal_job(renew_command, schedule=schedule, log_file=renewal_log)

        if installed:
            click.echo("✅ SSL renewal cron job installed")
            click.echo(f"   Runs {format_schedule_description(schedule)}")
            click.echo(f"   Logs to: {renewal_log}")
        else:
            click.echo("✅ SSL renewal cron job already exists")

        click.echo("")
        click.echo("📋 Current cron jobs:")
        click.echo(cron.read_crontab().rstrip())

        click.echo("")
        click.echo("🔧 To manually renew SSL:")
        click.echo(f"   sudo {renew_command}")
        click.echo("")
        click.echo("📝 To check renewal logs:")
        click.echo(f"   tail -f {renewal_log}")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "SSL renewal cron setup")


@ssl.command("validate")
@click.argument("cert_path")
@click.argument("key_path")
@click.argument("domain")
@click.pass_context
def ssl_validate(ctx: click.Context, cert_path: str, key_path: str, domain: str) -> None:
    """Validate a certificate and key against a domain."""
    try:
        from snippyops.ssl import SSLManager

        validation = SSLManager(verbose=ctx.obj["verbose"]).validate_certificate(
            cert_path=cert_path, key_path=key_path, domain=domain
        )

        click.echo(f"Certificate validation for {domain}:")
        click.echo(f"Status: {'✓ Valid' if validation['valid'] else '✗ Invalid'}")

        if validation["expires_in_days"] is not None:
            days = validation["expires_in_days"]
            if days < 0:
                click.echo(f"Expiration: EXPIRED ({abs(days)} days ago)")
            else:
                click.echo(f"Expiration: {days} days remaining")

        if validation["errors"]:
            click.echo("\nErrors:")
            for error in validation["errors"]:
                click.echo(f"  - {error}")

        if validation["warnings"]:
            click.echo("\nWarnings:")
            for warning in validation["warnings"]:
                click.echo(f"  - {warning}")

        if validation["cert_info"]:
            info = validation["cert_info"]
            click.echo("\nCertificate Information:")
            click.echo(f"  Subject: {info.get('subject', 'Unknown')}")
            click.echo(f"  Issuer: {info.get('issuer', 'Unknown')}")
            click.echo(f"  Serial: {info.get('serial_number', 'Unknown')}")
            if "san_domains" in info:
                click.echo(f"  SAN: {', '.join(info['san_domains'])}")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "SSL certificate validation")

    if not validation["valid"]:
        ctx.exit(1)


@ssl.command("info")
@click.argument("cert_path")
@click.option("--threshold-days", default=30, show_default=True, help="Renewal window in days")
@click.pass_context
def ssl_info(ctx: click.Context, cert_path: str, threshold_days: int) -> None:
    """Show certificate details and expiry."""
    try:
        from snippyops.ssl import SSLManager

        manager = SSLManager(verbose=ctx.obj["verbose"])
        info = manager.get_certificate_info(cert_path)
        expiry = manager.check_certificate_expiration(cert_path, threshold_days=threshold_days)

        click.echo(f"Certificate: {cert_path}")
        click.echo(f"  Subject: {', '.join(f'{k}={v}' for k, v in info['subject'].items())}")
        click.echo(f"  Issuer: {', '.join(f'{k}={v}' for k, v in info['issuer'].items())}")
        click.echo(f"  Self-signed: {'yes' if info['self_signed'] else 'no'}")
        if info["san"]:
            click.echo(f"  SAN: {', '.join(info['san'])}")
        click.echo(f"  Valid from: {info['not_valid_before']}")
        click.echo(f"  Valid until: {info['not_valid_after']}")

        if expiry["status"] == "expired":
            click.echo("  Status: ❌ EXPIRED")
        elif expiry["needs_renewal"]:
            click.echo(f"  Status: ⚠️ expires in {expiry['expires_in_days']} days, renewal due")
        else:
            click.echo(f"  Status: ✅ valid for {expiry['expires_in_days']} days")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "SSL certificate info")


if __name__ == "__main__":
    cli()
