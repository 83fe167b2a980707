from __future__ import annotations

_RULES = (
    "You are a smart shopping assistant.\n"
    'Extract the "Product Name" and "Price" from the {source}.\n'
    "The text might be messy, contain random characters, or be a mix of Korean and English.\n\n"
    "Rules:\n"
    '1. **Price**: Look for the largest number that likely represents a price (e.g., 4830, 10000). '
    'Ignore small numbers like "100g", "1등급".\n'
    '2. **Product Name**: Look for the main product description (e.g., "한우 등심", "서울우유"). '
    'Ignore "Price", "Discount", "Origin".\n'
    '3. **Correction**: Fix obvious OCR typos (e.g., "한우 둥심" -> "한우 등심").\n\n'
    "Return ONLY a JSON object with this format:\n"
    '{{\n  "productName": "string",\n  "price": number\n}}\n'
)


def build_text_prompt(text: str) -> str:
    return _RULES.format(source="following OCR text") + '\nOCR Text:\n"""\n' + text + '\n"""\n'


def build_image_prompt() -> str:
    return _RULES.format(source="attached photo of a price tag")
