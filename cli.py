import csv
import json
import logging
import sys
import traceback
from io import StringIO

import click
import sqlalchemy.exc
from tabulate import tabulate

from config.settings import settings
from core.cache.backends import create_backend
from core.cache.result_cache import ResultCache
from core.database.operations import init_db, SessionLocal, purge_expired_entries
from core.exceptions import ScraperError
from core.scrapers.scraper_factory import ScraperFactory
from core.search.service import SearchService

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("scraper-cli")

SITE_CHOICE = click.Choice(ScraperFactory.available_sites(), case_sensitive=False)


def get_service() -> SearchService:
    return SearchService()


def get_cache() -> ResultCache:
    return ResultCache(create_backend(settings), settings.CACHE_TTL_SECONDS)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, verbose):
    """E-commerce search scraper for Tokopedia and Blibli."""
    # Store verbose flag in the Click context instead of a global variable
    ctx.ensure_object(dict)
    ctx.obj["VERBOSE"] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")


@cli.command()
def init():
    """Create the cache table for the database backend."""
    try:
        init_db()
    except sqlalchemy.exc.SQLAlchemyError as e:
        click.echo(f"Database error: {str(e)}", err=True)
        sys.exit(1)
    click.echo("Database initialized!")


@cli.command()
@click.argument("site", type=SITE_CHOICE)
@click.argument("query", required=False)
@click.option(
    "--limit",
    "-l",
    type=click.IntRange(1, settings.MAX_LIMIT),
    default=settings.DEFAULT_LIMIT,
    help=f"Maximum number of products (default: {settings.DEFAULT_LIMIT})",
)
@click.option(
    "--format-type",
    "-f",
    type=click.Choice(["text", "table", "json", "csv"]),
    default="table",
    help="Output format (default: table)",
)
@click.option("--output", "-o", type=click.Path(), help="Save results to file")
@click.option("--no-cache", is_flag=True, help="Bypass the result cache")
@click.pass_context
def search(ctx, site, query, limit, format_type, output, no_cache):
    """Search SITE for QUERY and print the products found.

    QUERY defaults to the configured default search term.
    """
    query = query or settings.DEFAULT_QUERY
    click.echo(f"Searching {site} for '{query}' (limit: {limit})...")

    try:
        products = get_service().search(site, query, limit, use_cache=not no_cache)
    except ScraperError as e:
        click.echo(f"Error: {str(e)}", err=True)
        if ctx.obj["VERBOSE"]:
            click.echo(traceback.format_exc(), err=True)
        sys.exit(1)

    result_output = format_products(products, format_type)

    # Output to file or console
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(result_output)
        click.echo(f"{len(products)} products written to {output}")
    else:
        click.echo("\n" + result_output)


@cli.command()
def sites():
    """List the supported sites."""
    rows = []
    for name in ScraperFactory.available_sites():
        profile = ScraperFactory.get_profile(name)
        rows.append([
            profile.name,
            profile.display_name,
            profile.search_url(settings.DEFAULT_QUERY),
            "yes" if profile.data_marker else "no",
        ])
    click.echo(tabulate(rows, headers=["Site", "Name", "Search URL", "Embedded data"], tablefmt="grid"))


@cli.command("cache-get")
@click.argument("site", type=SITE_CHOICE)
@click.argument("query")
@click.option(
    "--format-type",
    "-f",
    type=click.Choice(["text", "table", "json", "csv"]),
    default="table",
    help="Output format (default: table)",
)
def cache_get(site, query, format_type):
    """Show the cached result for SITE and QUERY."""
    query = query.strip()
    products = get_cache().get(site, query)
    if products is None:
        click.echo(f"No cached result for {ResultCache.key(site, query)}")
        return
    click.echo(format_products(products, format_type))


@cli.command("cache-clear")
@click.argument("site", type=SITE_CHOICE)
@click.argument("query")
def cache_clear(site, query):
    """Delete the cached result for SITE and QUERY."""
    query = query.strip()
    key = ResultCache.key(site, query)
    if get_cache().invalidate(site, query):
        click.echo(f"Deleted {key}")
    else:
        click.echo(f"Nothing cached for {key}")


@cli.command("purge-cache")
def purge_cache():
    """Delete expired rows from the database cache table."""
    db = SessionLocal()
    try:
        deleted = purge_expired_entries(db)
    except sqlalchemy.exc.SQLAlchemyError as e:
        db.rollback()
        click.echo(f"Database error: {str(e)}", err=True)
        sys.exit(1)
    finally:
        db.close()
    click.echo(f"Purged {deleted} expired cache entries.")


@cli.command()
@click.option("--host", default=settings.SERVER_HOST, help=f"Bind address (default: {settings.SERVER_HOST})")
@click.option("--port", "-p", type=int, default=settings.SERVER_PORT, help=f"Port (default: {settings.SERVER_PORT})")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    click.echo(f"Starting API on http://{host}:{port}")
    uvicorn.run("api.main:app", host=host, port=port, reload=reload)


def format_products(products, format_type):
    """Format products based on specified format type."""
    if not products:
        return "No products found."

    if format_type == "json":
        return json.dumps([product.to_dict() for product in products], indent=2, ensure_ascii=False)

    if format_type == "text":
        lines = [f"Found {len(products)} products:"]
        for i, product in enumerate(products, 1):
            lines.append(f"\n{i}. {product.name}")
            lines.append(f"   Price: {product.price}")
            if product.rating:
                lines.append(f"   Rating: {product.rating}")
            if product.sold:
                lines.append(f"   Sold: {product.sold}")
            if product.shop_location:
                lines.append(f"   Location: {product.shop_location}")
            lines.append(f"   URL: {product.product_url}")
        return "\n".join(lines)

    elif format_type == "csv":
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(["Name", "Price", "Rating", "Sold", "Location", "URL", "Image"])
        for product in products:
            writer.writerow([
                product.name,
                product.price,
                product.rating or "",
                product.sold or "",
                product.shop_location or "",
                product.product_url,
                product.image_url,
            ])
        return output.getvalue()

    else:  # table format
        table_data = []
        for i, product in enumerate(products, 1):
            # Truncate product name if too long
            name = product.name
            if len(name) > 40:
                name = name[:37] + "..."
            table_data.append([
                i,
                name,
                product.price,
                product.rating or "-",
                product.sold or "-",
                product.shop_location or "-",
            ])

        headers = ["#", "Product", "Price", "Rating", "Sold", "Location"]
        return tabulate(table_data, headers=headers, tablefmt="grid")


if __name__ == "__main__":
    # This runs the Click application
    cli.main(obj={})
