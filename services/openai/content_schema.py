"""Schema definitions for the content generation function tools."""

from typing import Any, Dict

CONTENT_FUNCTION_NAME = "publish_catalog_content"
SUGGEST_FUNCTION_NAME = "suggest_new_products"
POST_FUNCTION_NAME = "compose_channel_post"

_KEY_VALUE = {
    "type": "object",
    "properties": {"key": {"type": "string"}, "value": {"type": "string"}},
    "required": ["key", "value"],
    "additionalProperties": False,
}

CONTENT_FUNCTION: Dict[str, Any] = {
    "type": "function",
    "name": CONTENT_FUNCTION_NAME,
    "description": "Return the complete SEO-optimized catalog entry for the product.",
    "parameters": {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "SEO-optimized product title containing the focus keyphrase."},
            "sku": {"type": ["string", "null"], "description": "Item code, if one can be derived."},
            "slug": {"type": "string", "description": "URL-friendly slug based on the new name."},
            "description": {"type": "string", "description": "About 300 words of HTML with inbound and outbound links."},
            "short_description": {"type": "string", "description": "Concise bullet-pointed HTML summary."},
            "tags": {"type": "array", "items": {"type": "string"}},
            "categories": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Category names, preferably chosen from the provided list.",
            },
            "attributes": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"name": {"type": "string"}, "value": {"type": "string"}},
                    "required": ["name", "value"],
                    "additionalProperties": False,
                },
            },
            "image_alts": {
                "type": "array",
                "items": {"type": "string"},
                "description": "One alt text per supplied image, in order.",
            },
            "meta_fields": {
                "type": "array",
                "items": _KEY_VALUE,
                "description": "SEO meta fields such as _yoast_wpseo_focuskw and _yoast_wpseo_metadesc.",
            },
            "regular_price": {"type": ["number", "null"], "description": "Suggested price in major units."},
        },
        "required": [
            "name",
            "sku",
            "slug",
            "description",
            "short_description",
            "tags",
            "categories",
            "attributes",
            "image_alts",
            "meta_fields",
            "regular_price",
        ],
        "additionalProperties": False,
    },
    "strict": True,
}

SUGGEST_FUNCTION: Dict[str, Any] = {
    "type": "function",
    "name": SUGGEST_FUNCTION_NAME,
    "description": "Return exactly three new product ideas ranked by expected demand.",
    "parameters": {
        "type": "object",
        "properties": {
            "suggestions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "description": "The suggested product name."},
                        "reason": {"type": "string", "description": "Short data-driven reason."},
                    },
                    "required": ["name", "reason"],
                    "additionalProperties": False,
                },
            }
        },
        "required": ["suggestions"],
        "additionalProperties": False,
    },
    "strict": True,
}

POST_FUNCTION: Dict[str, Any] = {
    "type": "function",
    "name": POST_FUNCTION_NAME,
    "description": "Return the finished channel post text.",
    "parameters": {
        "type": "object",
        "properties": {"content": {"type": "string", "description": "Post body, ready to send."}},
        "required": ["content"],
        "additionalProperties": False,
    },
    "strict": True,
}

# Intent resolver functions. Each maps onto one authoring tool.
UPDATE_DETAILS_FUNCTION: Dict[str, Any] = {
    "type": "function",
    "name": "update_details",
    "description": "Record product details the merchant stated in the message. Use null for anything not stated.",
    "parameters": {
        "type": "object",
        "properties": {
            "raw_name": {"type": ["string", "null"], "description": "Product name."},
            "price": {"type": ["number", "null"], "description": "Price in major units."},
            "material": {"type": ["string", "null"]},
            "localized_name": {"type": ["string", "null"], "description": "Name in Amharic."},
            "focus_keywords": {"type": ["string", "null"], "description": "Comma-separated SEO keywords."},
        },
        "required": ["raw_name", "price", "material", "localized_name", "focus_keywords"],
        "additionalProperties": False,
    },
    "strict": True,
}

OPTIMIZE_FUNCTION: Dict[str, Any] = {
    "type": "function",
    "name": "optimize",
    "description": "Generate the optimized listing. Only when the merchant asks to proceed.",
    "parameters": {"type": "object", "properties": {}, "required": [], "additionalProperties": False},
    "strict": True,
}

SUGGEST_PRODUCTS_FUNCTION: Dict[str, Any] = {
    "type": "function",
    "name": "suggest_products",
    "description": "Suggest new products to create based on search trends.",
    "parameters": {"type": "object", "properties": {}, "required": [], "additionalProperties": False},
    "strict": True,
}
