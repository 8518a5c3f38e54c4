#!filepath: solbt/cli.py
import typer
from rich import print
from rich.markup import escape

from solbt.utils.datetime_utils import DateTimeUtils
from solbt.utils.errors import ContractViolation, UserInputError

app = typer.Typer(help="SOL daily backtest core CLI")


@app.command()
def version():
    print("v0.1.0")


@app.command()
def window(instant: str):
    """
    UTC 时刻 -> 是否合法入口 + baseline settlement
    """
    from solbt.time.windowing import NyWindowing

    try:
        t = DateTimeUtils.parse_utc(instant)
    except UserInputError as e:
        print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=2)

    local = DateTimeUtils.to_local(t)
    entry = NyWindowing.try_make_trading_entry(t)
    if entry is None:
        print(f"[yellow]{t.isoformat()} (NY {local:%a %Y-%m-%d %H:%M}) is not a trading entry[/yellow]")
        raise typer.Exit(code=1)

    settlement = NyWindowing.compute_settlement_instant(entry)
    print(f"[green]entry[/green]      {entry.value.isoformat()}  (NY {local:%a %Y-%m-%d %H:%M})")
    print(f"[green]settlement[/green] {settlement.value.isoformat()}")
    print(f"[green]day key[/green]    {entry.day_key}")


@app.command()
def classify(instant: str, train_until: str):
    """
    UTC 时刻 + 训练截止日 -> train / oos / excluded
    """
    from solbt.time.train_split import classify_by_baseline_exit
    from solbt.time.types import TrainBoundary

    try:
        t = DateTimeUtils.parse_utc(instant)
        boundary = TrainBoundary.from_date(DateTimeUtils.parse_date(train_until))
        cls, exit_key = classify_by_baseline_exit(t, boundary)
    except (UserInputError, ContractViolation) as e:
        print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=2)

    print(f"[blue]{cls.value}[/blue] exit_day_key={exit_key if exit_key else '-'}")


@app.command("show-config")
def show_config(path: str = typer.Argument(None)):
    """
    加载并打印配置（YAML + .env）
    """
    from solbt.config.app_config import AppConfig

    try:
        cfg = AppConfig.load(path)
    except (FileNotFoundError, UserInputError) as e:
        print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=2)

    print(cfg.model_dump(mode="json"))


if __name__ == "__main__":
    app()

# python -m solbt.cli window 2024-03-11T12:00:00Z
