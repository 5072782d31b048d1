from __future__ import annotations
import codecs
import json
from typing import Optional
import typer
from pydantic import ValidationError
from .config import load_config, AppConfig
from .errors import VisionServiceError
from .logging import setup_logging

app = typer.Typer(add_completion=False, help="vmhelper - talk to a line-oriented vision service over TCP")

def _unescape(term: Optional[str]) -> Optional[str]:
    # "\r" typed on a shell arrives as backslash + r
    return codecs.decode(term, "unicode_escape") if term else term

def _resolve(config: Optional[str], host: Optional[str], port: Optional[int], timeout_ms: Optional[int],
             send_term: Optional[str], recv_term: Optional[str]) -> AppConfig:
    cfg = load_config(config)
    if host is not None: cfg.server.host = host
    if port is not None: cfg.server.port = port
    if timeout_ms is not None: cfg.server.timeout_ms = timeout_ms
    if send_term is not None: cfg.terminators.send = _unescape(send_term)
    if recv_term is not None: cfg.terminators.receive = _unescape(recv_term)
    try:
        return AppConfig.model_validate(cfg.model_dump())
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err["loc"])
        raise typer.BadParameter(f"{field}: {err['msg']}")

def _echo_result(result, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps({"values": result.to_dict(), "arrays": result.to_array_dict()}, indent=2))
        return
    for key, value in result.items():
        typer.echo(f"{key:>16}  {value}")
    for key, values in result.array_items():
        typer.echo(f"{key:>16}  [{', '.join(values)}]")

@app.callback()
def main(log_level: str = typer.Option("WARNING", "--log-level", help="DEBUG, INFO, WARNING, ERROR")):
    setup_logging(log_level)

@app.command()
def send(
    command: str = typer.Argument(..., help="Command text to send, e.g. 'T1'"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    host: Optional[str] = typer.Option(None, "--host", help="Vision service host/IP"),
    port: Optional[int] = typer.Option(None, "--port", help="Vision service TCP port"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Round trip timeout (ms)"),
    send_term: Optional[str] = typer.Option(None, "--send-term", help="Send terminator, escapes allowed: '\\r'"),
    recv_term: Optional[str] = typer.Option(None, "--recv-term", help="Receive terminator, escapes allowed: '\\r'"),
    raw: bool = typer.Option(False, "--raw", help="Print the response text without parsing"),
    json_out: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    from .devices.tcp_service import TcpService
    cfg = _resolve(config, host, port, timeout_ms, send_term, recv_term)
    with TcpService.from_config(cfg) as svc:
        try:
            if raw:
                typer.echo(svc.send_command(command))
                return
            result = svc.send_command_and_parse(command, cfg.parser.pair_separator, cfg.parser.key_value_separator)
        except VisionServiceError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)
    _echo_result(result, json_out)

@app.command()
def parse(
    response: str = typer.Argument(..., help="Response text, e.g. 'X:1,Pts:[1,2,3]'"),
    pair_sep: str = typer.Option(",", "--pair-sep", help="Separator between pairs"),
    kv_sep: str = typer.Option(":", "--kv-sep", help="Separator between key and value"),
    json_out: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    from .parse_result import ParseResult
    try:
        result = ParseResult(response, pair_sep, kv_sep)
    except VisionServiceError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    _echo_result(result, json_out)

@app.command()
def ping(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms"),
):
    from .devices.tcp_service import TcpService
    cfg = _resolve(config, host, port, timeout_ms, None, None)
    with TcpService.from_config(cfg) as svc:
        ok = svc.connect()
    typer.echo(f"{cfg.server.host}:{cfg.server.port} {'reachable' if ok else 'unreachable'}")
    raise typer.Exit(code=0 if ok else 1)

@app.command("init-dirs")
def init_dirs(config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML")):
    from .utils.paths import VisionPaths
    paths = VisionPaths.from_config(load_config(config).paths)
    paths.ensure_directories()
    typer.echo(f"Input:  {paths.input_dir}")
    typer.echo(f"Output: {paths.output_dir}")

if __name__ == "__main__":
    app()
