"""
Gmail 메일함 미러 시스템

메인 진입점 파일입니다.
"""

import asyncio
import typer
from rich.console import Console

from adapters.cli.account_commands import app as account_app
from adapters.cli.db_commands import app as db_app
from adapters.cli.mailbox_commands import app as mailbox_app
from adapters.cli.sync_commands import app as sync_app
from adapters.db.database import open_database
from adapters.factory import get_adapter_factory
from config.adapters import get_config

# 메인 CLI 앱
app = typer.Typer(
    name="mirror",
    help="Gmail 메일함 미러 시스템",
    no_args_is_help=True,
)

# 서브 명령어 추가
app.add_typer(account_app, name="account")
app.add_typer(db_app, name="db")
app.add_typer(sync_app, name="sync")
app.add_typer(mailbox_app, name="mailbox")

console = Console()


@app.command("init-db")
def init_database(
    drop_existing: bool = typer.Option(False, "--drop", help="기존 테이블을 삭제하고 재생성"),
):
    """데이터베이스를 초기화합니다."""

    async def _init_db():
        try:
            config = get_config()
            console.print(f"[blue]환경: {config.get_environment()}[/blue]")
            console.print(f"[blue]데이터베이스: {config.get_database_url()}[/blue]")

            async with open_database(config) as db_adapter:
                if drop_existing:
                    console.print("[yellow]기존 테이블을 삭제하는 중...[/yellow]")
                    await db_adapter.drop_tables()

                console.print("[blue]데이터베이스 테이블을 생성하는 중...[/blue]")
                await db_adapter.create_tables()

            console.print("[green]✓ 데이터베이스가 성공적으로 초기화되었습니다![/green]")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_init_db())


@app.command("version")
def show_version():
    """버전 정보를 표시합니다."""
    console.print("[bold]Gmail 메일함 미러 시스템[/bold]")
    console.print("버전: 1.0.0")


@app.command("config")
def show_config():
    """현재 설정을 표시합니다."""
    try:
        config = get_config()
        options = config.get_sync_options()

        console.print("[bold]현재 설정[/bold]")
        console.print(f"환경: {config.get_environment()}")
        console.print(f"디버그 모드: {config.is_debug()}")
        console.print(f"데이터베이스 URL: {config.get_database_url()}")
        console.print(f"Google 클라이언트 ID: {config.get_google_client_id()}")
        console.print(f"HTTP 타임아웃(초): {config.get_http_timeout()}")
        console.print(f"웹 서버: {config.get_web_host()}:{config.get_web_port()}")
        console.print(f"로그 레벨: {config.get_log_level()}")
        console.print(f"동기화 페이지 크기: {options.page_size}")
        console.print(f"전체 동기화 최대 메시지 수: {options.max_full_sync_messages}")
        console.print(f"메시지 조회 간격(초): {options.rate_limit_delay}")
        console.print(f"전체 동기화 라벨: {', '.join(options.full_sync_label_ids) or '(전체 메일함)'}")

        encryption_service = get_adapter_factory().create_encryption_service()
        key_status = "[green]정상[/green]" if encryption_service.verify_key() else "[red]오류[/red]"
        console.print(f"암호화 키: {key_status}")

    except Exception as e:
        console.print(f"[red]오류: {str(e)}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
