# coffeeproc.py
# Command-line front end for Coffee Diary.
# - Process payment exports into the coffee document (process)
# - Classify a single ad-hoc record (classify)
# - Show cached statistics, receipt, cafe and bean-merchant lists, brand visits
#
# Examples:
#   python coffeeproc.py process alipay-record wechatpay-record
#   python coffeeproc.py process exports/ --out data/coffee-data.json --force
#   python coffeeproc.py classify --merchant "Starbucks Coffee" --explain
#   python coffeeproc.py stats
#   python coffeeproc.py receipt
#   python coffeeproc.py cafes --beans
#   python coffeeproc.py visits --brand manner --espresso

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple

import click

from categorizer.service import CategorizerService, resolve_rules_path
from cd_core.models import Transaction
from cd_utils.fingerprint import files_fingerprint
from cd_utils.logging_setup import setup_logging
from config.loader import DEFAULT_CONFIG, load_config, setting
from pipeline.filters import DisplayFilters, DisplayVocabulary, filter_by_date
from pipeline.receipt import aggregate_receipt, render_receipt_text
from pipeline.runner import (
    SCHEMA_VERSION,
    discover_exports,
    document_from_dict,
    process_paths,
    write_document,
)
from storage.sqlite_store import CacheStore

LOGGER = logging.getLogger("coffeeproc")

EXIT_NO_FILES = 2
EXIT_FAILED = 3


def _load_cfg(path: str | None) -> Dict[str, Any]:
    try:
        return load_config(Path(path) if path else None)
    except FileNotFoundError as e:
        LOGGER.warning("%s; using built-in defaults.", e)
        return {}


def _cached_document(db_path: str) -> Dict[str, Any]:
    with CacheStore(db_path) as store:
        doc = store.load_document()
    if doc is None:
        raise click.ClickException(
            f"No processed data in {db_path}; run `coffeeproc process` first."
        )
    return document_from_dict(doc)


# ----------------------------- CLI -----------------------------
@click.group()
@click.option(
    "--config",
    "config_path",
    default=str(DEFAULT_CONFIG),
    show_default=True,
    help="Path to config.toml.",
)
@click.option(
    "--rules",
    "rules_path",
    default=None,
    help="Rules YAML (defaults to the bundled config/coffee_rules.yaml).",
)
@click.option("--verbose", is_flag=True, help="Verbose logging.")
@click.option("--quiet", is_flag=True, help="Only warnings/errors.")
@click.pass_context
def cli(ctx: click.Context, config_path: str, rules_path: str | None, verbose: bool, quiet: bool) -> None:
    """Coffee diary processor CLI."""
    cfg = _load_cfg(config_path)
    level = setting(cfg, "logging", "level")
    if quiet:
        level = "WARNING"
    if verbose:
        level = "DEBUG"
    setup_logging(level)
    ctx.obj = {"cfg": cfg, "rules_path": rules_path}


def _db_default(ctx: click.Context) -> str:
    return setting(ctx.obj["cfg"], "paths", "db")


@cli.command("process")
@click.argument("paths", nargs=-1, type=click.Path(exists=True, readable=True))
@click.option("--db", "db_path", default=None, help="SQLite cache path.")
@click.option("--out", "out_path", default=None, help="Where to write the JSON document.")
@click.option("--force", is_flag=True, help="Re-process even if the inputs are unchanged.")
@click.pass_context
def process_cmd(
    ctx: click.Context,
    paths: Tuple[str, ...],
    db_path: str | None,
    out_path: str | None,
    force: bool,
) -> None:
    """Process Alipay CSV and WeChat Pay Excel exports."""
    cfg = ctx.obj["cfg"]
    if not paths:
        defaults = (setting(cfg, "paths", "alipay_dir"), setting(cfg, "paths", "wechatpay_dir"))
        paths = tuple(p for p in defaults if p and Path(p).exists())
    db_path = db_path or _db_default(ctx)
    out = Path(out_path or setting(cfg, "paths", "output"))

    found = discover_exports(Path(p) for p in paths)
    files = found["alipay"] + found["wechatpay"]
    if not files:
        click.echo("[info] no export files found.")
        ctx.exit(EXIT_NO_FILES)

    click.echo(
        f"[info] found {len(found['alipay'])} alipay, {len(found['wechatpay'])} wechatpay file(s)."
    )
    # rules and output-affecting settings are part of the cache key
    rules_file = resolve_rules_path(ctx.obj["rules_path"])
    source_hash = files_fingerprint(
        files + [rules_file],
        settings={
            "target_year": setting(cfg, "ingest", "target_year"),
            "scrub_account": setting(cfg, "privacy", "scrub_account"),
        },
    )

    with CacheStore(db_path) as store:
        cached = store.load_document() if not force else None
        if cached and store.source_hash() == source_hash:
            write_document({"schema_version": SCHEMA_VERSION, **cached}, out)
            click.echo(f"[skip] inputs unchanged (hash={source_hash[:8]}) -> {out}")
            return

        try:
            service = CategorizerService(rules_path=str(rules_file))
            doc = process_paths(found["alipay"], found["wechatpay"], service, cfg=cfg)
        except (OSError, ValueError) as exc:
            LOGGER.exception("Processing failed: %s", exc)
            ctx.exit(EXIT_FAILED)

        store.save_document(doc, source_hash=source_hash)

    write_document(doc, out)
    stats = doc["statistics"]
    click.echo(f"[ok] {stats['total_purchases']} coffee purchase(s) -> {out}")
    click.echo(
        f"[sum] spending={stats['total_spending']:.2f} "
        f"avg/month={stats['average_per_month']:.1f} "
        f"avg/week={stats['average_per_week']:.1f} "
        f"top={stats['most_frequent_shop'] or '-'}"
    )


@cli.command("classify")
@click.option("--merchant", default="", help="Counterparty name.")
@click.option("--description", default="", help="Item/order description.")
@click.option("--account", default="", help="Counterparty account or domain.")
@click.option("--explain", is_flag=True, help="Show which passes fired.")
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
@click.pass_context
def classify_cmd(
    ctx: click.Context,
    merchant: str,
    description: str,
    account: str,
    explain: bool,
    as_json: bool,
) -> None:
    """Classify one ad-hoc record."""
    service = CategorizerService(rules_path=ctx.obj["rules_path"])
    txn = Transaction(
        date="",
        time="",
        merchant=merchant,
        description=description,
        account=account,
        amount=0.0,
    )
    c = service.classify(txn)
    beans = service.beans.explain(txn) if c.is_coffee else None
    payload = {
        "is_coffee": c.is_coffee,
        "confidence": round(c.confidence, 4),
        "matched_keywords": c.matched_keywords,
        "is_beans": bool(beans and beans.is_beans),
    }
    if explain:
        payload["fired"] = c.fired
        payload["bean_reasons"] = beans.reasons if beans else []

    if as_json:
        click.echo(json.dumps(payload, ensure_ascii=False))
        return
    for k, v in payload.items():
        if isinstance(v, list):
            v = ", ".join(v) or "-"
        click.echo(f"{k:<17}: {v}")


@cli.command("stats")
@click.option("--db", "db_path", default=None, help="SQLite cache path.")
@click.pass_context
def stats_cmd(ctx: click.Context, db_path: str | None) -> None:
    """Show statistics of the cached document."""
    doc = _cached_document(db_path or _db_default(ctx))
    s = doc["statistics"]
    click.echo(f"Total purchases : {s.total_purchases}")
    click.echo(f"Total spending  : ¥{s.total_spending:.2f}")
    click.echo(f"Avg per month   : {s.average_per_month:.1f}")
    click.echo(f"Avg per week    : {s.average_per_week:.1f}")
    click.echo(f"Most frequent   : {s.most_frequent_shop or 'N/A'}")
    for month in sorted(s.purchase_frequency):
        click.echo(f"  {month}  {s.purchase_frequency[month]}")


@cli.command("receipt")
@click.option("--db", "db_path", default=None, help="SQLite cache path.")
@click.pass_context
def receipt_cmd(ctx: click.Context, db_path: str | None) -> None:
    """Print the receipt summary."""
    doc = _cached_document(db_path or _db_default(ctx))
    click.echo(render_receipt_text(aggregate_receipt(doc["coffee_transactions"])))


@cli.command("cafes")
@click.option("--db", "db_path", default=None, help="SQLite cache path.")
@click.option("--beans", is_flag=True, help="List bean merchants instead of cafes.")
@click.pass_context
def cafes_cmd(ctx: click.Context, db_path: str | None, beans: bool) -> None:
    """List independent cafes (or bean merchants) seen in the cached data."""
    doc = _cached_document(db_path or _db_default(ctx))
    service = CategorizerService(rules_path=ctx.obj["rules_path"])
    filters = DisplayFilters(DisplayVocabulary.from_config(service.section("display")))
    by_date = doc["coffee_by_date"]
    names = filters.bean_merchants(by_date) if beans else filters.cafe_names(by_date)
    if not names:
        click.echo("[info] none found.")
        return
    for name in names:
        click.echo(name)


@cli.command("visits")
@click.option("--db", "db_path", default=None, help="SQLite cache path.")
@click.option("--brand", required=True, help="Brand key from the display rules (manner, grid, dozzze, hans).")
@click.option("--espresso", is_flag=True, help="Manner only: keep purchases at espresso price.")
@click.pass_context
def visits_cmd(ctx: click.Context, db_path: str | None, brand: str, espresso: bool) -> None:
    """List cached purchases of one brand, by date."""
    doc = _cached_document(db_path or _db_default(ctx))
    service = CategorizerService(rules_path=ctx.obj["rules_path"])
    filters = DisplayFilters(DisplayVocabulary.from_config(service.section("display")))
    try:
        keep = filters.brand_filter(brand, espresso_only=espresso)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--brand")
    by_date = filter_by_date(doc["coffee_by_date"], keep)
    count = 0
    for day in sorted(by_date):
        for t in by_date[day]:
            click.echo(f"{day} {t.time}  {t.merchant}  ¥{t.amount:.2f}")
            count += 1
    click.echo(f"[sum] {count} visit(s)")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
