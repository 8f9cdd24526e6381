"""
HTML composition for the gift guide and its delivery email.

The markup lives in Jinja2 templates under `templates/`, loaded through an
autoescaping environment, so every caller-supplied string is escaped on
the way in. Composition is a pure function of its inputs: identical input
produces byte-identical markup.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import escape

from .colors import BrandPalette
from .errors import CompositionError
from .settings import LOGO_ATTRIBUTION, PRODUCT_CATALOG, SENDER_COMPANY, Product


_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

COVER_TITLE = "Custom Gift Guide"
PRODUCTS_HEADING = "Featured Products"
GRID_COLUMNS = 2


@dataclass(frozen=True)
class ContactBlock:
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class PageHeader:
    logo_url: str
    contact: ContactBlock


@dataclass(frozen=True)
class Page:
    kind: str
    header: PageHeader
    title: Optional[str] = None
    subtitle: Optional[str] = None
    products: Tuple[Product, ...] = ()
    footer: Optional[str] = None


@dataclass(frozen=True)
class DocumentDescription:
    title: str
    palette: BrandPalette
    pages: Tuple[Page, ...]
    html: str


def escape_html(text: str) -> str:
    return str(escape(text))


@lru_cache(maxsize=1)
def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def compose_document(
    company_name: str,
    logo_url: str,
    palette: BrandPalette,
    contact: ContactBlock,
    products: Sequence[Product] = PRODUCT_CATALOG,
) -> DocumentDescription:
    """
    Build the two-page gift guide: a cover page and a product grid page.

    Both pages share a header with the company logo and the contact block.
    Each product image carries a small logo badge; the product page ends
    with the logo attribution footer.
    """
    header = PageHeader(logo_url=logo_url, contact=contact)
    pages = (
        Page(
            kind="cover",
            header=header,
            title=COVER_TITLE,
            subtitle=f"for {company_name}",
        ),
        Page(
            kind="products",
            header=header,
            title=PRODUCTS_HEADING,
            products=tuple(products),
            footer=LOGO_ATTRIBUTION,
        ),
    )
    title = f"{COVER_TITLE} - {company_name}"
    html = _render_html(title, company_name, palette, pages)
    if not html.strip():
        raise CompositionError("Failed to generate HTML template")
    return DocumentDescription(title=title, palette=palette, pages=pages, html=html)


def _render_html(
    title: str,
    company_name: str,
    palette: BrandPalette,
    pages: Sequence[Page],
) -> str:
    template = _get_env().get_template("guide.html")
    return template.render(
        title=title,
        company_name=company_name,
        palette=palette,
        pages=pages,
        grid_columns=GRID_COLUMNS,
    )


def render_email_body(company_name: str, contact_name: str) -> str:
    """
    HTML body for the delivery email, signed by the account contact.
    """
    template = _get_env().get_template("email.html")
    return template.render(
        company_name=company_name,
        contact_name=contact_name,
        sender_company=SENDER_COMPANY,
    )
