"""Command-line interface for taxbridge."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from ..classification import HSCodeClassifier
from ..config import load_config_from_env
from ..engine.calculator import TaxCalculationEngine
from ..engine.validation import summarize_results
from ..errors import TaxCalculationError


def _build_engine() -> TaxCalculationEngine:
    return TaxCalculationEngine(load_config_from_env())


def _emit(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _fail(exc: TaxCalculationError) -> None:
    click.echo(json.dumps({"error": exc.to_dict()}, indent=2, ensure_ascii=False, default=str), err=True)
    click.get_current_context().exit(1)


def _load_products(path: Path) -> List[Dict[str, Any]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("products", [])
    if not isinstance(data, list):
        raise click.BadParameter("expected a JSON list of products", param_hint="FILE")
    return data


@click.group()
def cli() -> None:
    """Cross-border duty and VAT calculator."""


@cli.command()
@click.option("--country", required=True, help="Destination country code (e.g. DE, US, UK).")
@click.option("--product-json", default=None, help="Full product record as a JSON object.")
@click.option("--id", "product_id", default="cli-product", show_default=True, help="Product id.")
@click.option("--title", default="", help="Product title used for classification.")
@click.option("--price", type=float, default=None, help="Product price.")
@click.option("--currency", default="USD", show_default=True, help="Currency of the price.")
@click.option("--hs-code", default=None, help="Harmonized code, if known.")
@click.option("--category", default=None, help="Product category, if known.")
@click.option("--summary", is_flag=True, help="Emit the short summary instead of the full trace.")
def calculate(
    country: str,
    product_json: Optional[str],
    product_id: str,
    title: str,
    price: Optional[float],
    currency: str,
    hs_code: Optional[str],
    category: Optional[str],
    summary: bool,
) -> None:
    """Calculate duty and VAT for one product."""

    if product_json:
        try:
            product = json.loads(product_json)
        except ValueError as exc:
            raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--product-json") from exc
    else:
        if price is None:
            raise click.UsageError("either --price or --product-json is required")
        product = {
            "id": product_id,
            "title": title,
            "price": price,
            "currency": currency,
            "hs_code": hs_code,
            "category": category,
        }

    engine = _build_engine()
    try:
        if summary:
            result = engine.calculate_summary(product, country)
        else:
            result = engine.calculate(product, country)
    except TaxCalculationError as exc:
        _fail(exc)
        return
    _emit(result.model_dump(mode="json"))


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--country", required=True, help="Destination country code.")
def batch(file: Path, country: str) -> None:
    """Calculate every product in FILE (a JSON list) for one country."""

    products = _load_products(file)
    results = _build_engine().calculate_batch(products, country)
    _emit(
        {
            "results": [result.model_dump(mode="json") for result in results],
            "totals": summarize_results(results).model_dump(),
        }
    )


@cli.command()
@click.argument("title")
def classify(title: str) -> None:
    """Suggest a category and HS code for a product TITLE."""

    _emit(HSCodeClassifier().classify(title).model_dump())


@cli.command("hs-code")
@click.argument("code")
def hs_code(code: str) -> None:
    """Show the code table entry for CODE."""

    try:
        info = HSCodeClassifier().require(code)
    except TaxCalculationError as exc:
        _fail(exc)
        return
    _emit(info.model_dump())


@cli.command()
@click.argument("country")
def rates(country: str) -> None:
    """Show the VAT rate, thresholds and special rules of COUNTRY."""

    try:
        info = _build_engine().country_rates(country)
    except TaxCalculationError as exc:
        _fail(exc)
        return
    _emit(info.model_dump())


@cli.command()
def stats() -> None:
    """Show cache statistics and rate source health."""

    engine = _build_engine()
    _emit({**engine.get_service_stats(), "supported_countries": engine.supported_countries()})


if __name__ == "__main__":
    cli()
