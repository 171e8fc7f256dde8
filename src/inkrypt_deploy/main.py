import typer

from inkrypt_deploy.commands.ensure import ensure_dns_a_command, ensure_worker_routes_command
from inkrypt_deploy.commands.resolve import resolve_config, resolve_zone_command

app = typer.Typer(
    name="inkrypt-deploy",
    help="Cloudflare deployment helpers for Inkrypt",
    add_completion=False,
    rich_markup_mode=None,
)


@app.callback(invoke_without_command=True)
def callback(ctx: typer.Context):
    """
    Resolve deploy configuration and converge Cloudflare DNS and Worker routes.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help(), err=True)
        raise typer.Exit(code=2)


app.command("resolve-config")(resolve_config)
app.command("resolve-zone")(resolve_zone_command)
app.command("ensure-dns-a")(ensure_dns_a_command)
app.command("ensure-worker-routes")(ensure_worker_routes_command)


if __name__ == "__main__":
    app()
