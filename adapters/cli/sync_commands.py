"""
메일함 동기화 CLI 명령어
"""

import asyncio

import typer
from rich.console import Console

from adapters.cli.account_commands import parse_account_id
from adapters.db.database import open_database
from adapters.factory import get_adapter_factory
from config.adapters import get_config
from core.domain.exceptions import SyncInProgressError

app = typer.Typer(name="sync", help="메일함 동기화 명령어")
console = Console()


@app.command("run")
def run_sync(
    account_id: str = typer.Argument(..., help="계정 ID"),
    force_full: bool = typer.Option(False, "--force-full", help="커서를 무시하고 전체 동기화"),
):
    """계정의 메일함을 동기화합니다."""
    account_uuid = parse_account_id(account_id)

    async def _sync():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_mailbox_sync_usecase(session)

                    console.print(f"[blue]동기화 시작: {account_uuid}[/blue]")
                    summary = await usecase.sync_mailbox(account_uuid, force_full=force_full)

                    console.print(f"[green]✓ 동기화가 완료되었습니다! ({summary.mode.value})[/green]")
                    console.print(f"저장된 메시지: {summary.upserted_count}")
                    console.print(f"삭제된 메시지: {summary.deleted_count}")

        except SyncInProgressError as e:
            console.print(f"[yellow]{str(e)}[/yellow]")
            raise typer.Exit(1)
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_sync())


if __name__ == "__main__":
    app()
