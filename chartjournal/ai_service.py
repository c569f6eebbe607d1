# chartjournal/ai_service.py
import json
import logging
import math
import re
import time
from typing import Any, Dict, List, Optional, Tuple

import openai
from fastapi import Depends
from sqlalchemy.orm import Session

from . import crud
from .config import settings
from .database import get_db

logger = logging.getLogger(__name__)

MODE_DETAILS = {
    "scalp": "This is a SCALP trade. Focus on very short-term (1-15 minute) price action, tight stop losses, "
             "and quick profit-taking. Analyze momentum, order flow, and immediate support/resistance.",
    "day": "This is a DAY trade. The position will be closed today. Analyze intraday trends (5-min to 1-hour "
           "charts), key daily levels, and volume patterns.",
    "swing": "This is a SWING trade. The position could be held for a few days to a few weeks. Analyze the "
             "4-hour to daily chart. Identify the dominant trend, key swing highs/lows, and consolidation patterns.",
    "position": "This is a POSITION trade. The position could be held for weeks or months. Analyze the weekly "
                "and monthly charts. Focus on major economic trends, long-term support/resistance, and market "
                "structure.",
}

RESPONSE_FIELDS = (
    "detectedTimeframe", "tradeType", "entryPrice", "stopLoss", "takeProfit", "leverage", "profitAmount",
    "tradeBias", "confidenceScore", "marketTrend", "keyPattern", "indicatorAnalysis", "rationale", "error",
)

# Checked in order; the first category with a matching keyword wins
ERROR_KEYWORDS = (
    ("quota", ("quota", "rate limit", "ratelimit", "resource_exhausted", "429", "too many requests")),
    ("auth", ("api key", "api_key", "unauthorized", "permission", "401", "403", "not set")),
    ("timeout", ("timeout", "timed out")),
    ("network", ("network", "connection", "fetch", "unreachable")),
    ("format", ("invalid response", "format", "json")),
)

USER_MESSAGES = {
    "quota": "The AI service is unavailable because the quota or rate limit has been exceeded. Please try again later.",
    "auth": "The Gemini API key is invalid or missing. Please check it in the Settings.",
    "timeout": "The AI request timed out. Please try again.",
    "network": "Could not connect to the AI service. Please check your connection.",
    "format": "The AI returned a response in an invalid format. Please try again.",
    "generic": "An unknown error occurred during AI analysis.",
}

STATUS_CODES = {
    "quota": 429,
    "auth": 400,
    "timeout": 504,
    "network": 502,
    "format": 502,
    "rejected": 422,
    "generic": 502,
}


class AIResponseFormatError(ValueError):
    """The model answered, but not with a usable JSON object."""


class AIServiceError(Exception):
    def __init__(self, message: str, category: Optional[str] = None):
        super().__init__(message)
        self.category = category or classify_ai_error(message)
        # A rejection carries the model's own explanation
        self.user_message = message if self.category == "rejected" else USER_MESSAGES[self.category]
        self.status_code = STATUS_CODES[self.category]


def classify_ai_error(message: str) -> str:
    lowered = (message or "").lower()
    for category, keywords in ERROR_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "generic"


# ==================== RESPONSE PARSING ====================

FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
COMMA_GROUPS_RE = re.compile(r"^-?\d{1,3}(?:,\d{3})+$")
DOT_GROUPS_RE = re.compile(r"^-?\d{1,3}(?:\.\d{3})+$")
NUMBER_RE = re.compile(r"(-?\d[\d.,]*)([eE][-+]?\d+)?")


def parse_ai_json(text: str) -> Dict[str, Any]:
    """Pull the single JSON object out of a model reply"""
    if not text or not text.strip():
        raise AIResponseFormatError("Empty response from AI")

    fenced = FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)

    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise AIResponseFormatError("No JSON object found in AI response")
    candidate = text[start:end + 1]

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        try:
            data = json.loads(TRAILING_COMMA_RE.sub(r"\1", candidate))
        except json.JSONDecodeError as e:
            raise AIResponseFormatError(f"AI response is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise AIResponseFormatError("AI response JSON is not an object")
    return data


def _plain_decimal(mantissa: str) -> Optional[str]:
    """Rewrite '1,234.50', '1.234,50', '1,25' or '1.234.567' with a single '.' decimal point"""
    if "," in mantissa and "." in mantissa:
        # Whichever separator comes last is the decimal point
        decimal, grouping = (",", ".") if mantissa.rfind(",") > mantissa.rfind(".") else (".", ",")
        return mantissa.replace(grouping, "").replace(decimal, ".")
    if "," in mantissa:
        if COMMA_GROUPS_RE.match(mantissa):
            return mantissa.replace(",", "")
        return mantissa.replace(",", ".") if mantissa.count(",") == 1 else None
    if mantissa.count(".") > 1:
        return mantissa.replace(".", "") if DOT_GROUPS_RE.match(mantissa) else None
    return mantissa


def to_number(value: Any) -> Optional[float]:
    """Lenient number parsing: '$1,234.50', '1.234,56', '1,25', '2.5x', '1e5' all work.

    Strings whose separators cannot be read one way only ('1,2,3') give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = NUMBER_RE.search(str(value))
        if not match:
            return None
        mantissa = _plain_decimal(match.group(1).rstrip(".,"))
        if mantissa is None:
            return None
        try:
            number = float(mantissa + (match.group(2) or ""))
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _direction(value: Any) -> str:
    text = str(value or "").strip().lower()
    if text in ("long", "buy", "bullish"):
        return "Long"
    if text in ("short", "sell", "bearish"):
        return "Short"
    raise AIResponseFormatError(f"Missing or invalid tradeType: {value!r}")


def _required_price(source: Dict[str, Any], key: str) -> float:
    price = to_number(source.get(key))
    if price is None or price <= 0:
        raise AIResponseFormatError(f"Missing or invalid {key}: {source.get(key)!r}")
    return price


def _rationale_text(value: Any) -> str:
    if isinstance(value, list):
        return "\n".join(f"- {str(item).strip()}" for item in value if str(item).strip())
    return str(value or "").strip()


def estimate_profit(entry: float, target: float, leverage: float, equity: float, trade_type: str) -> float:
    """Profit at target with the whole equity deployed at the given leverage"""
    if not entry or not target or not leverage or not equity:
        return 0.0
    position_size = equity * leverage
    move = target - entry if trade_type == "Long" else entry - target
    return round(move * (position_size / entry), 2)


def normalize_chart_analysis(data: Dict[str, Any], mode: str, risk_params: Dict[str, Any],
                             current_equity: float) -> Dict[str, Any]:
    """Turn a parsed reply into trade fields, filling defaults for optional ones"""
    error = data.get("error")
    if isinstance(error, str) and error.strip():
        raise AIServiceError(error.strip(), "rejected")

    # Accept both the flat layout and a nested tradeSetup object
    setup = data.get("tradeSetup") if isinstance(data.get("tradeSetup"), dict) else data

    trade_type = _direction(setup.get("tradeType"))
    entry = _required_price(setup, "entryPrice")
    stop = _required_price(setup, "stopLoss")
    target = _required_price(setup, "takeProfit")

    risk = abs(entry - stop)
    rrr = round(abs(target - entry) / risk, 2) if risk else 0

    leverage = to_number(data.get("leverage")) or to_number(risk_params.get("leverage")) or 1.0
    confidence = to_number(data.get("confidenceScore"))
    confidence = 50.0 if confidence is None else min(100.0, max(0.0, confidence))
    profit = to_number(data.get("profitAmount"))
    if profit is None:
        profit = estimate_profit(entry, target, leverage, current_equity, trade_type)

    return {
        "mode": mode,
        "market_trend": str(data.get("marketTrend") or "Unknown"),
        "key_pattern": str(data.get("keyPattern") or "None identified"),
        "indicator_analysis": str(data.get("indicatorAnalysis") or ""),
        "trade_bias": str(data.get("tradeBias") or ("Bullish" if trade_type == "Long" else "Bearish")),
        "trade_setup": {
            "trade_type": trade_type,
            "entry_price": entry,
            "stop_loss": stop,
            "take_profit": target,
            "rrr": rrr,
        },
        "rationale": _rationale_text(data.get("rationale")),
        "confidence_score": confidence,
        "detected_timeframe": str(data["detectedTimeframe"]) if data.get("detectedTimeframe") else None,
        "leverage": leverage,
        "profit_amount": profit,
    }


# ==================== PROMPTS ====================

def build_chart_prompt(mode: str, risk_params: Dict[str, Any], variant: int = 0,
                       language: Optional[str] = None) -> str:
    """Chart-analysis instruction; later variants are stricter about the output shape"""
    language = language or settings.AI_RESPONSE_LANGUAGE
    risk_profile = (
        f"- Account Balance: ${risk_params.get('account_balance', 'unknown')}\n"
        f"- Risk Per Trade: {risk_params.get('risk_per_trade', 'unknown')}%\n"
        f"- Leverage: {risk_params.get('leverage', 'unknown')}x"
    )
    fields = ", ".join(RESPONSE_FIELDS)

    if variant == 0:
        return f"""
As a professional trading analyst AI, conduct a detailed, unbiased technical analysis of the provided chart image.

Context:
1. Trading Mode: {MODE_DETAILS[mode]}
2. Trader's Risk Profile:
{risk_profile}

Instructions:
1. Evaluate market trend, key chart patterns and indicator signals (RSI, MACD, Moving Averages, Volume).
   List both bullish and bearish factors.
2. Choose a trade bias ('Bullish', 'Bearish' or 'Neutral/Sideways') and a confidence score from 0 to 100.
3. Give a concrete setup: tradeType ('Long' or 'Short'), entryPrice, stopLoss and takeProfit as numbers,
   targeting a risk/reward of at least 1:2. Detect the chart timeframe (detectedTimeframe).
4. rationale is a list of short strings: bullish factors, bearish factors, core thesis,
   confirmation signal, invalidation condition, and the confidence breakdown.
5. If the image is not a price chart, set "error" to a short explanation and leave the rest empty.

Respond ONLY with one JSON object with these keys: {fields}.
Write all text values in {language}.
""".strip()

    if variant == 1:
        return f"""
Your previous answer could not be parsed. Analyze the chart image again ({mode} trade).
Return ONLY a raw JSON object, without markdown fences or any other text, with exactly these keys:
{fields}.
tradeType must be "Long" or "Short". entryPrice, stopLoss, takeProfit, leverage, profitAmount and
confidenceScore must be plain numbers. rationale must be a JSON array of strings.
Write all text values in {language}.
""".strip()

    return f"""
Fill in this JSON object for the attached {mode} trading chart and return nothing else:
{{"detectedTimeframe": "", "tradeType": "Long", "entryPrice": 0, "stopLoss": 0, "takeProfit": 0,
"leverage": {to_number(risk_params.get('leverage')) or 1}, "profitAmount": 0, "tradeBias": "",
"confidenceScore": 50, "marketTrend": "", "keyPattern": "", "indicatorAnalysis": "", "rationale": [], "error": ""}}
Prices must be real levels read from the chart. Write text values in {language}.
""".strip()


def build_performance_prompt(summary: List[Dict[str, Any]], language: Optional[str] = None) -> str:
    language = language or settings.AI_RESPONSE_LANGUAGE
    blocks = []
    for s in summary:
        lines = [f"{s['mode'].capitalize()}:"]
        if s.get("initial_capital") is not None:
            lines.append(f"- Initial Capital: ${s['initial_capital']:,.2f}")
        lines.append(f"- Net P/L: {'+' if s['net_pl'] >= 0 else '-'}${abs(s['net_pl']):,.2f}")
        if s.get("current_equity") is not None:
            lines.append(f"- Current Equity: ${s['current_equity']:,.2f}")
        lines.append(f"- Total Trades: {s['total_trades']}")
        lines.append(f"- Win Rate: {s['win_rate']}%")
        lines.append(f"- Wins: {s['wins']}")
        lines.append(f"- Losses: {s['losses']}")
        lines.append(f"- Completed: {s['completed']}")
        blocks.append("\n".join(lines))

    return (
        "You are an expert trading performance coach. Here are the user's trading statistics for each mode:\n\n"
        + "\n\n".join(blocks)
        + "\n\nGive a brief summary of the user's overall performance and 1 actionable suggestion for "
          f"improvement. Do not include any code blocks or JSON. Answer in {language}."
    )


ADVISOR_INSTRUCTION = """
You are an AI financial advisor assistant. Your role is to provide educational and insightful analysis of a user's
investment portfolio.
- NEVER give direct financial advice to buy or sell specific assets.
- ALWAYS be cautious, prudent, and educational.
- Frame all responses in terms of financial principles, risk management, and diversification.
- ALWAYS end every response with a Markdown blockquote stating: "This information is for educational purposes only
  and is not financial advice. All investments involve risk. Consult with a qualified financial advisor before making
  any decisions."
- Keep your responses concise and easy to understand.
""".strip()


# ==================== CLIENT ====================

def create_client(api_key: str) -> openai.OpenAI:
    # Retries are handled here, per response format, not by the transport
    return openai.OpenAI(api_key=api_key, base_url=settings.GEMINI_BASE_URL, max_retries=0)


def _usage(response) -> Dict[str, int]:
    usage = getattr(response, "usage", None)
    return {
        "prompt": getattr(usage, "prompt_tokens", 0) or 0,
        "completion": getattr(usage, "completion_tokens", 0) or 0,
        "total": getattr(usage, "total_tokens", 0) or 0,
    }


class GeminiAnalyzer:
    def __init__(self, api_key: str, client=None, model: Optional[str] = None):
        if not api_key:
            raise AIServiceError("Gemini API key is not set.", "auth")
        self.model = model or settings.GEMINI_MODEL
        self.client = client or create_client(api_key)

    def _complete(self, messages: List[Dict[str, Any]], **kwargs):
        try:
            return self.client.chat.completions.create(model=self.model, messages=messages, **kwargs)
        except openai.OpenAIError as e:
            logger.error("Gemini request failed: %s", e)
            raise AIServiceError(str(e), classify_ai_error(f"{type(e).__name__} {e}")) from e

    @staticmethod
    def _text(response) -> str:
        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError):
            return ""

    def analyze_chart(self, image_data_url: str, mode: str, risk_params: Dict[str, Any],
                      current_equity: float) -> Tuple[Dict[str, Any], Dict[str, int]]:
        """Analyze a chart screenshot into a trade setup.

        Format problems are retried with a stricter prompt, up to
        AI_MAX_ATTEMPTS attempts and AI_RETRY_DELAY_SECONDS apart. Transport
        errors and explicit rejections are raised straight away.
        """
        attempts = max(1, settings.AI_MAX_ATTEMPTS)
        usage = {"prompt": 0, "completion": 0, "total": 0}
        last_error = None

        for attempt in range(attempts):
            prompt = build_chart_prompt(mode, risk_params, variant=attempt)
            response = self._complete([{
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_data_url}},
                ],
            }])
            for key, value in _usage(response).items():
                usage[key] += value

            try:
                data = parse_ai_json(self._text(response))
                return normalize_chart_analysis(data, mode, risk_params, current_equity), usage
            except AIResponseFormatError as e:
                last_error = e
                logger.warning("Chart analysis attempt %d/%d unusable: %s", attempt + 1, attempts, e)
                if attempt < attempts - 1:
                    time.sleep(settings.AI_RETRY_DELAY_SECONDS)

        raise AIServiceError(f"Invalid response format after {attempts} attempts: {last_error}", "format")

    def analyze_performance(self, summary: List[Dict[str, Any]]) -> Tuple[str, Dict[str, int]]:
        response = self._complete([{"role": "user", "content": build_performance_prompt(summary)}])
        return self._text(response), _usage(response)

    def generate_financial_advice(self, portfolio: Dict[str, Any], question: str) -> Tuple[str, Dict[str, int]]:
        prompt = (
            f"Here is the user's current portfolio data:\n{json.dumps(portfolio, indent=2, default=str)}\n\n"
            f'The user has the following question: "{question}"\n\n'
            "Please provide a helpful and educational response based on their portfolio and question, "
            f"following all the rules from your system instructions. Answer in {settings.AI_RESPONSE_LANGUAGE}."
        )
        response = self._complete([
            {"role": "system", "content": ADVISOR_INSTRUCTION},
            {"role": "user", "content": prompt},
        ])
        return self._text(response), _usage(response)


def verify_api_key(api_key: str, client=None) -> bool:
    """Cheap round trip to check a key"""
    if not api_key:
        return False
    try:
        client = client or create_client(api_key)
        client.chat.completions.create(
            model=settings.GEMINI_MODEL,
            messages=[{"role": "user", "content": "test"}],
            max_tokens=5,
        )
        return True
    except openai.OpenAIError as e:
        logger.warning("API key validation failed: %s", e)
        return False


def get_analyzer(db: Session = Depends(get_db)) -> GeminiAnalyzer:
    """Request dependency: analyzer bound to the stored (or configured) key"""
    return GeminiAnalyzer(crud.get_gemini_api_key(db))
