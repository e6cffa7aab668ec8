import sys
from typing import Optional

import click

from . import active_config, gcloud, sdk_settings
from .config import KitConfig, configure, load_env_files
from .logging_utils import setup_logging, get_logger


logger = get_logger(__name__)


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help=".env / .env.gcloud 를 읽을 디렉토리 (기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다.",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int) -> None:
    """gcloud 활성 설정 / access token 조회 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose

    load_env_files(chdir)
    try:
        configure(KitConfig.from_env())
    except ValueError as e:
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)


def _fail(message: str, exc: Exception) -> None:
    logger.debug("오류 상세", exc_info=exc)
    click.echo(f"[ERROR] {message}: {exc}", err=True)
    sys.exit(1)


@main.command(name="config")
@click.option("--refresh", is_flag=True, help="캐시를 무시하고 gcloud 에서 다시 읽습니다.")
def show_config(refresh: bool) -> None:
    """활성 설정 요약 (name, project, zone, region, account, sentinel, fingerprint)"""
    try:
        cfg = active_config.get_active_config(refresh=refresh)
    except Exception as e:  # noqa: BLE001
        _fail("활성 설정 조회 실패", e)
        return

    lines = [
        "# Active gcloud configuration",
        f"- name: {cfg.name or '(unknown)'}",
        f"- project: {cfg.project or '(not set)'}",
        f"- zone: {cfg.zone or '(not set)'}",
        f"- region: {cfg.region or '(not set)'}",
        f"- account: {cfg.account or '(not set)'}",
        f"- sentinel: {cfg.sentinel_file}",
        f"- fingerprint: {cfg.fingerprint}",
    ]
    expiry = cfg.user_token.expiry
    lines.append(f"- token_expiry: {expiry.isoformat() if expiry else 'never'}")
    click.echo("\n".join(lines))


@main.command()
@click.option("--refresh", is_flag=True, help="새 access token 을 발급받습니다.")
def token(refresh: bool) -> None:
    """현재 access token 을 출력"""
    try:
        user_token = active_config.get_active_token(refresh=refresh)
    except Exception as e:  # noqa: BLE001
        _fail("access token 조회 실패", e)
        return
    click.echo(user_token.access_token)


@main.command(name="get")
@click.argument("prop")
def get_property(prop: str) -> None:
    """활성 설정의 property 값을 출력 (예: core/project, zone)"""
    try:
        value = active_config.get_active_config().get_property_value(prop)
    except Exception as e:  # noqa: BLE001
        _fail("활성 설정 조회 실패", e)
        return

    if value is None:
        click.echo(f"[ERROR] property 가 설정되지 않았습니다: {prop}", err=True)
        sys.exit(1)
    click.echo(value)


@main.command()
@click.argument("name", required=False)
def settings(name: Optional[str]) -> None:
    """
    gcloud 를 실행하지 않고 디스크의 설정 파일을 직접 읽어 출력한다.
    NAME 을 주면 해당 값만 출력한다.
    """
    if name:
        value = sdk_settings.get_settings_value(name)
        if value is None:
            click.echo(f"[ERROR] 설정 값을 찾을 수 없습니다: {name}", err=True)
            sys.exit(1)
        click.echo(value)
        return

    lines = [
        "# Cloud SDK settings (on disk)",
        f"- config_dir: {sdk_settings.get_config_dir() or '(not found)'}",
        f"- configuration: {sdk_settings.get_current_configuration_name() or '(not found)'}",
        f"- file: {sdk_settings.get_current_configuration_file_path() or '(not found)'}",
        f"- project: {sdk_settings.get_default_project() or '(not set)'}",
        f"- usage_reporting: {sdk_settings.get_opt_into_usage_reporting()}",
    ]
    click.echo("\n".join(lines))


@main.command()
def info() -> None:
    """Cloud SDK installation properties 파일 경로를 출력"""
    try:
        path = gcloud.get_installation_properties_path()
    except Exception as e:  # noqa: BLE001
        _fail("gcloud info 실패", e)
        return
    click.echo(path)
