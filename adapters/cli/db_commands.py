"""
데이터베이스 관리 CLI 명령어

데이터베이스 초기화, 리셋, 테이블 현황 조회를 위한 CLI 명령어입니다.
"""

import asyncio
import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import func, select

from adapters.db.database import open_database
from adapters.db.models import AccountModel, LabelModel, MessageModel
from config.adapters import get_config

# CLI 앱 생성
app = typer.Typer(name="db", help="데이터베이스 관리 명령어")
console = Console()


@app.command("init")
def init_database():
    """데이터베이스를 초기화합니다."""

    async def _init():
        try:
            console.print("[blue]데이터베이스 초기화 시작...[/blue]")

            # 데이터베이스 초기화 (테이블 생성)
            async with open_database(get_config()) as db_adapter:
                await db_adapter.create_tables()

            console.print("[green]✓ 데이터베이스 초기화가 완료되었습니다![/green]")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_init())


@app.command("reset")
def reset_database():
    """데이터베이스를 리셋합니다. (모든 데이터 삭제)"""

    confirm = typer.confirm("모든 데이터가 삭제됩니다. 계속하시겠습니까?")
    if not confirm:
        console.print("[yellow]취소되었습니다.[/yellow]")
        return

    async def _reset():
        try:
            console.print("[blue]데이터베이스 리셋 시작...[/blue]")

            # 테이블 삭제 후 재생성
            async with open_database(get_config()) as db_adapter:
                await db_adapter.reset()

            console.print("[green]✓ 데이터베이스 리셋이 완료되었습니다![/green]")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_reset())


@app.command("status")
def show_status():
    """테이블별 레코드 수를 조회합니다."""

    async def _status():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    table = Table(title="테이블 현황")
                    table.add_column("테이블", style="cyan")
                    table.add_column("레코드 수", justify="right", style="green")

                    for model in (AccountModel, MessageModel, LabelModel):
                        result = await session.execute(select(func.count()).select_from(model))
                        table.add_row(model.__tablename__, str(result.scalar_one()))

                    console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_status())


if __name__ == "__main__":
    app()
