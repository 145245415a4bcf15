# cli.py - interactive console for the Titan catalog
import os
import sys
from datetime import datetime
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.titan_client import AdminSession

console = Console()
c = AdminSession(base_url=os.getenv("TITAN_API_URL", "http://127.0.0.1:8085"))

CATEGORIES = ["protein", "gainer", "preworkout"]

# Global state for status messages and caching
status_message = "Ready"
product_cache: List[Dict[str, Any]] = []

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]], title: str = "📦 Products Catalog"):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=20)
    table.add_column("Title", style="bold", width=24)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Category", width=12)
    table.add_column("Description", width=36)

    for p in products:
        table.add_row(
            _text(p, "id", "N/A"),
            _text(p, "title", "N/A"),
            _text(p, "price", "-"),
            _text(p, "category", "N/A"),
            _text(p, "description")
        )
    console.print(table)


def show_detail(detail: Dict[str, Any]):
    p = detail["product"]
    lines = [f"[bold]{_text(p, 'title')}[/bold]  [dim]{_text(p, 'category').upper()}[/dim]", _text(p, "description")]
    for label, key in (("Flavour", "flavour"), ("Price", "price"), ("Servings", "servings"),
                       ("Weight", "weight"), ("Usage", "usage")):
        if p.get(key):
            lines.append(f"[cyan]{label}:[/cyan] {p[key]}")
    for label, key in (("Ingredients", "ingredients"), ("Benefits", "benefits")):
        if p.get(key):
            lines.append(f"[cyan]{label}:[/cyan] " + ", ".join(str(i) for i in p[key]))
    lines.append(f"💬 {detail['whatsapp_link']}")
    lines.append(f"📞 {detail['call_link']}")
    console.print(Panel("\n".join(lines), title=f"ℹ️ {_text(p, 'id')}", border_style="blue"))
    show_products(detail.get("related", []), title="You may also like")


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner.
    Any failure becomes a plain status message and None is returned.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except Exception as e:
        status_message = f"Error: {e}"
        console.print(show_status(f"Error: {e}", False))
        return None


# ---------------------------
# Autocompletion helpers
# ---------------------------
def get_product_completer():
    global product_cache
    if not product_cache:
        product_cache = try_api(c.catalog) or []
    ids = [_text(p, "id") for p in product_cache]
    return WordCompleter([i for i in ids if i], ignore_case=True)


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "💪 TITAN NUTRITION",
        "[bold blue]Catalog Console[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_list(message: str, default: Optional[List[str]] = None) -> Optional[List[str]]:
    raw = Prompt.ask(f"{message} (comma separated)", default=", ".join(default or []))
    items = [s.strip() for s in raw.split(",") if s.strip()]
    return items or None


def _text(record: Any, key: str, fallback: str = "") -> str:
    value = record.get(key) if isinstance(record, dict) else None
    return fallback if value is None or value == "" else str(value)


def ask_product(existing: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    # start from the whole stored record so fields not prompted for survive the PUT
    product = dict(existing or {})
    product.setdefault("id", "")
    product["title"] = prompt_with_autocomplete("Product title", default=_text(product, "title"))
    product["description"] = prompt_with_autocomplete("Description", default=_text(product, "description"))
    product["price"] = Prompt.ask("💰 Price (e.g. $39.99)", default=_text(product, "price", "$0.00"))
    product["category"] = prompt_with_autocomplete(
        "🏷️ Category", completer=WordCompleter(CATEGORIES), default=_text(product, "category", "protein")
    )
    product["image"] = prompt_with_autocomplete("Image path", default=_text(product, "image"))
    product["nutritionLabel"] = prompt_with_autocomplete("Nutrition label path", default=_text(product, "nutritionLabel"))

    if Confirm.ask("Edit detail fields?", default=False):
        for key in ("flavour", "detailedDescription", "usage", "servings", "weight"):
            value = Prompt.ask(key, default=_text(product, key))
            if value:
                product[key] = value
            else:
                product.pop(key, None)
        for key in ("ingredients", "benefits"):
            current = product.get(key)
            items = ask_list(key, current if isinstance(current, list) else None)
            if items:
                product[key] = items
            else:
                product.pop(key, None)
    return product


def require_admin() -> bool:
    if c.authenticated:
        return True
    console.print(show_status("Admin access required, log in first", False))
    return False


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, product_cache

    console.clear()
    console.print(create_header())
    product_cache = try_api(c.catalog) or []

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        lock = "🔓" if c.authenticated else "🔒"
        options = [
            ("1", "📦 List products", "5", f"{lock} Admin login"),
            ("2", "🔍 Search products", "6", "➕ Add product"),
            ("3", "ℹ️ Product details", "7", "✏️ Edit product"),
            ("4", "✅ Verify authenticity", "8", "🗑️ Delete product"),
            ("", "", "q", "👋 Quit")
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 9)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            products = try_api(c.catalog, success_msg="Products loaded")
            if products is not None:
                product_cache = products
                show_products(products)

        elif choice == "2":
            term = prompt_with_autocomplete("Search title, description or category")
            res = try_api(c.list_products, term, success_msg=f"Search for '{term}' completed")
            if res is not None:
                show_products(res)

        elif choice == "3":
            pid = prompt_with_autocomplete("Product ID", completer=get_product_completer())
            detail = try_api(c.get_product, pid)
            if detail:
                show_detail(detail)

        elif choice == "4":
            code = prompt_with_autocomplete("Scanned code")
            result = try_api(c.verify_product, code)
            if result is not None:
                if result.verified:
                    console.print(Panel.fit(f"[green]✓ Genuine product[/green]\n[bold]{result.title}[/bold]",
                                            title="Verified Successfully", border_style="green"))
                else:
                    console.print(Panel.fit("[red]Unable to verify this product. Check the code and try again.[/red]",
                                            title="Authentication Failed", border_style="red"))

        elif choice == "5":
            code = Prompt.ask("Security code", password=True)
            granted = try_api(c.login, code)
            if granted:
                status_message = "Access granted!"
            elif granted is not None:
                status_message = "Error: Invalid security code"

        elif choice == "6":
            if require_admin():
                product = ask_product()
                products = try_api(c.add_product, product, success_msg="Product saved successfully!")
                if products is not None:
                    product_cache = products
                    show_products(products)

        elif choice == "7":
            if require_admin():
                pid = prompt_with_autocomplete("Product ID", completer=get_product_completer())
                existing = next((p for p in product_cache if isinstance(p, dict) and p.get("id") == pid), None)
                if existing is None:
                    console.print(show_status(f"No product with id {pid}", False))
                    continue
                product = ask_product(existing)
                products = try_api(c.update_product, product, success_msg="Product saved successfully!")
                if products is not None:
                    product_cache = products
                    show_products(products)

        elif choice == "8":
            if require_admin():
                pid = prompt_with_autocomplete("Product ID", completer=get_product_completer())
                if Confirm.ask(f"[red]Are you sure you want to delete {pid}?[/red]"):
                    products = try_api(c.delete_product, pid, success_msg="Product deleted successfully!")
                    if products is not None:
                        product_cache = products

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Bye! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n\n[bold red]Unexpected error: {e}[/bold red]")
        sys.exit(1)
