import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")


def parse_price_to_decimal(price_raw: str | None) -> Decimal | None:
    if not price_raw:
        return None

    # Examples:
    # "R$ 1.299,90"
    # "1,299.90 BRL"
    # "59,99"
    s = price_raw.strip()

    s = s.replace(" ", " ")
    s = re.sub(r"[^\d.,]", " ", s)
    s = re.sub(r"\s+", " ", s).strip()

    # take last number-like token
    tokens = re.findall(r"\d[\d.,]*", s)
    if not tokens:
        return None

    num = tokens[-1].rstrip(".,")

    if "," in num and "." in num:
        # whichever separator comes last is the decimal one
        if num.rfind(",") > num.rfind("."):
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")
    elif "," in num:
        if re.search(r",\d{2}$", num):
            num = num.replace(",", ".")
        else:
            num = num.replace(",", "")
    elif num.count(".") > 1 or re.search(r"\.\d{3}$", num):
        # "1.299" is thousands in pt-BR markup
        num = num.replace(".", "")

    try:
        return Decimal(num)
    except InvalidOperation:
        return None


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def derive_discount(current: Decimal | None, original: Decimal | None) -> int:
    if current is None or original is None or original <= 0 or current >= original:
        return 0
    pct = ((original - current) / original * 100).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return max(0, min(100, int(pct)))


def clamp_discount(value) -> int:
    try:
        return max(0, min(100, int(value)))
    except (TypeError, ValueError):
        return 0


def format_price(amount: Decimal, symbol: str) -> str:
    return f"{symbol} {quantize(amount):.2f}"
