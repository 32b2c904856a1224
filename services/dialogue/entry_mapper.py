"""Reverse-map a stored catalog entry into an editable draft."""

from models.catalog_entry import CatalogEntry
from models.product_draft import ImageRef, ProductDraft, parse_price

MATERIAL_ATTRIBUTE = "Material"
FOCUS_KEYWORD_META = "_yoast_wpseo_focuskw"


def draft_from_entry(entry: CatalogEntry) -> ProductDraft:
    keywords = entry.meta(FOCUS_KEYWORD_META) or ", ".join(entry.tags)
    return ProductDraft(
        raw_name=entry.name or None,
        price_minor=parse_price(entry.price),
        material=entry.attribute(MATERIAL_ATTRIBUTE),
        focus_keywords=str(keywords) if keywords else None,
        images=[
            ImageRef(external_id=image.id, url=image.url, alt_text=image.alt or None, is_new_upload=False)
            for image in entry.images
        ],
        edit_target_id=entry.id,
    )
