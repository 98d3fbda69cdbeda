"""
미러 메일함 조회 및 라벨 적용 CLI 명령어
"""

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from adapters.cli.account_commands import parse_account_id
from adapters.db.database import open_database
from adapters.factory import get_adapter_factory
from config.adapters import get_config

app = typer.Typer(name="mailbox", help="미러 메일함 명령어")
console = Console()


@app.command("messages")
def list_messages(
    account_id: str = typer.Argument(..., help="계정 ID"),
    label: Optional[str] = typer.Option(None, help="라벨 ID 필터"),
    limit: int = typer.Option(20, help="조회할 메시지 수"),
):
    """미러된 메시지를 최신순으로 조회합니다."""
    account_uuid = parse_account_id(account_id)

    async def _messages():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_mailbox_management_usecase(session)
                    messages = await usecase.list_messages(account_uuid, limit=limit, label_id=label)

                    if not messages:
                        console.print("[yellow]저장된 메시지가 없습니다.[/yellow]")
                        return

                    table = Table(title="메시지 목록")
                    table.add_column("ID", style="cyan")
                    table.add_column("발송 시간", style="dim")
                    table.add_column("발신자", style="green")
                    table.add_column("제목", style="bold")
                    table.add_column("라벨", style="magenta")

                    for message in messages:
                        table.add_row(
                            message.remote_message_id,
                            message.sent_at.strftime("%Y-%m-%d %H:%M") if message.sent_at else "-",
                            message.sender or "-",
                            message.subject or "(제목 없음)",
                            ", ".join(message.label_ids),
                        )

                    console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_messages())


@app.command("labels")
def list_labels(
    account_id: str = typer.Argument(..., help="계정 ID"),
):
    """미러된 라벨 목록을 조회합니다."""
    account_uuid = parse_account_id(account_id)

    async def _labels():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_mailbox_management_usecase(session)
                    labels = await usecase.list_labels(account_uuid)

                    if not labels:
                        console.print("[yellow]저장된 라벨이 없습니다.[/yellow]")
                        return

                    table = Table(title="라벨 목록")
                    table.add_column("ID", style="cyan")
                    table.add_column("이름", style="green")
                    table.add_column("종류", style="magenta")
                    table.add_column("전체", justify="right")
                    table.add_column("읽지 않음", justify="right")

                    for label in labels:
                        table.add_row(
                            label.remote_label_id,
                            label.name,
                            label.kind.value if label.kind else "-",
                            str(label.total_count) if label.total_count is not None else "-",
                            str(label.unread_count) if label.unread_count is not None else "-",
                        )

                    console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_labels())


@app.command("stats")
def show_stats(
    account_id: str = typer.Argument(..., help="계정 ID"),
):
    """라벨별 메시지 사용 통계를 표시합니다."""
    account_uuid = parse_account_id(account_id)

    async def _stats():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_mailbox_management_usecase(session)
                    usage = await usecase.usage_stats(account_uuid)

                    if not usage:
                        console.print("[yellow]집계할 메시지가 없습니다.[/yellow]")
                        return

                    table = Table(title="라벨별 사용 통계")
                    table.add_column("라벨", style="cyan")
                    table.add_column("전체", justify="right", style="green")
                    table.add_column("읽지 않음", justify="right", style="yellow")

                    for item in usage:
                        table.add_row(item.label_id, str(item.total), str(item.unread))

                    console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_stats())


@app.command("apply-label")
def apply_label(
    account_id: str = typer.Argument(..., help="계정 ID"),
    label_id: str = typer.Argument(..., help="추가할 라벨 ID"),
    message_ids: List[str] = typer.Argument(..., help="대상 메시지 ID 목록"),
):
    """메시지들에 라벨을 추가합니다. (원격 반영 후 미러 갱신)"""
    account_uuid = parse_account_id(account_id)

    async def _apply():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_mailbox_management_usecase(session)
                    modified_count = await usecase.apply_label(account_uuid, label_id, message_ids)
                    console.print(f"[green]✓ 라벨이 적용되었습니다: {modified_count}개 메시지 변경[/green]")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_apply())


if __name__ == "__main__":
    app()
