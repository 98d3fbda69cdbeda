"""
계정 관리 CLI 명령어

AccountManagementUseCase를 CLI 명령으로 노출하는 어댑터입니다.
"""

import asyncio
from typing import Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from adapters.db.database import open_database
from adapters.factory import get_adapter_factory
from config.adapters import get_config

# CLI 앱 생성
app = typer.Typer(name="account", help="계정 관리 명령어")
console = Console()


def parse_account_id(account_id: str) -> UUID:
    """문자열 계정 ID를 UUID로 변환합니다."""
    try:
        return UUID(account_id)
    except ValueError:
        console.print("[red]오류: 잘못된 계정 ID 형식입니다.[/red]")
        raise typer.Exit(1)


@app.command("register")
def register_account(
    email: str = typer.Argument(..., help="Gmail 이메일 주소"),
    refresh_token: str = typer.Option(..., "--refresh-token", help="OAuth 리프레시 토큰"),
    display_name: Optional[str] = typer.Option(None, help="표시 이름"),
):
    """이미 발급된 리프레시 토큰으로 Gmail 계정을 등록합니다."""

    async def _register():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_account_management_usecase(session)

                    account = await usecase.register_account(
                        email=email,
                        refresh_token=refresh_token,
                        display_name=display_name,
                    )

                    console.print("[green]✓ 계정이 성공적으로 등록되었습니다![/green]")
                    console.print(f"계정 ID: {account.id}")
                    console.print(f"이메일: {account.email}")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_register())


@app.command("list")
def list_accounts(
    limit: int = typer.Option(10, help="조회할 계정 수"),
    skip: int = typer.Option(0, help="건너뛸 계정 수"),
):
    """등록된 계정 목록을 조회합니다."""

    async def _list():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_account_management_usecase(session)
                    accounts = await usecase.list_accounts(skip, limit)

                    if not accounts:
                        console.print("[yellow]등록된 계정이 없습니다.[/yellow]")
                        return

                    table = Table(title="등록된 계정 목록")
                    table.add_column("ID", style="cyan")
                    table.add_column("이메일", style="green")
                    table.add_column("표시 이름", style="blue")
                    table.add_column("동기화 커서", style="magenta")
                    table.add_column("마지막 전체 동기화", style="yellow")

                    for account in accounts:
                        table.add_row(
                            str(account.id),
                            account.email,
                            account.display_name or "-",
                            account.sync_cursor or "-",
                            account.last_full_sync_at.strftime("%Y-%m-%d %H:%M") if account.last_full_sync_at else "-",
                        )

                    console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_list())


@app.command("show")
def show_account(
    account_id: str = typer.Argument(..., help="계정 ID"),
):
    """특정 계정의 상세 정보를 조회합니다."""
    account_uuid = parse_account_id(account_id)

    async def _show():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_account_management_usecase(session)
                    account = await usecase.get_account(account_uuid)

                    console.print("[bold]계정 정보[/bold]")
                    console.print(f"ID: {account.id}")
                    console.print(f"이메일: {account.email}")
                    console.print(f"표시 이름: {account.display_name or '-'}")
                    console.print(f"토큰 만료: {account.token_expiry or '-'}")
                    console.print(f"동기화 커서: {account.sync_cursor or '-'}")
                    console.print(f"마지막 전체 동기화: {account.last_full_sync_at or '-'}")
                    console.print(f"생성일: {account.created_at}")
                    console.print(f"수정일: {account.updated_at}")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_show())


@app.command("update-credentials")
def update_credentials(
    account_id: str = typer.Argument(..., help="계정 ID"),
    refresh_token: str = typer.Option(..., "--refresh-token", help="새 OAuth 리프레시 토큰"),
):
    """계정의 리프레시 토큰을 교체합니다."""
    account_uuid = parse_account_id(account_id)

    async def _update():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_account_management_usecase(session)
                    account = await usecase.update_credentials(account_uuid, refresh_token)
                    console.print(f"[green]✓ 자격 증명이 교체되었습니다: {account.email}[/green]")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_update())


@app.command("reset-cursor")
def reset_cursor(
    account_id: str = typer.Argument(..., help="계정 ID"),
):
    """동기화 커서를 초기화합니다. 다음 동기화는 전체 동기화로 진행됩니다."""
    account_uuid = parse_account_id(account_id)

    async def _reset():
        try:
            async with open_database(get_config()) as db_adapter:
                async with db_adapter.get_session() as session:
                    usecase = get_adapter_factory().create_account_management_usecase(session)
                    account = await usecase.reset_sync_state(account_uuid)
                    console.print(f"[green]✓ 동기화 커서가 초기화되었습니다: {account.email}[/green]")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_reset())


if __name__ == "__main__":
    app()
