"""Gemini 回應生成

依序嘗試 (模型, API 版本) 組合直到成功：
1. 從 Bot 設定的模型名稱解析出正式模型 ID，排在佇列最前面
2. 接上設定檔中的備用模型清單（去重、保留順序）
3. 每個模型先試 v1beta 再試 v1
4. 429 等待固定秒數後重試同一組合一次
5. 金鑰無效立即中止，其他錯誤繼續嘗試下一組
6. 全部失敗時用不含 system prompt 的最小請求診斷一次

失敗一律以 CompletionError 表示，訊息內容會直接回覆給使用者。
"""

import asyncio
import base64
import logging
import re

import httpx

from ..config import settings
from .bot.message import AttemptOutcome, CompletionAttempt, MediaPayload
from .errors import AllModelsFailedError, EmptyPromptError, InvalidApiKeyError

logger = logging.getLogger("gemini")

# 錯誤片段最多保留的字數（會顯示給使用者）
ERROR_SNIPPET_LENGTH = 100

DIAGNOSTIC_NOTE = (
    "【診断】設定されたシステムプロンプトを外すと応答できました。"
    "プロンプトの内容が制限に触れている可能性があります。"
)

# 括號內的註記，如「(推奨)」「（無料枠）」「[beta]」
_ANNOTATION_PATTERN = re.compile(r"[\(（\[【].*?[\)）\]】]")
_MODEL_PATTERN = re.compile(r"(gemini-[a-z0-9](?:[a-z0-9.\-]*[a-z0-9])?)")

_INVALID_KEY_MARKERS = (
    "api_key_invalid",
    "api key not valid",
    "api key expired",
    "api_key_expired",
    "expired",
)

# 分類結果 -> 佇列動作
ACTION_RETURN = "return"
ACTION_ABORT = "abort"
ACTION_CONTINUE = "continue"

OUTCOME_ACTIONS = {
    AttemptOutcome.SUCCESS: ACTION_RETURN,
    AttemptOutcome.INVALID_KEY: ACTION_ABORT,
    AttemptOutcome.EMPTY: ACTION_CONTINUE,
    AttemptOutcome.NOT_FOUND: ACTION_CONTINUE,
    AttemptOutcome.QUOTA: ACTION_CONTINUE,
    AttemptOutcome.ERROR: ACTION_CONTINUE,
}


# ============================================================
# 模型佇列
# ============================================================


def parse_model_hint(hint: str | None) -> str:
    """從顯示用的模型名稱解析正式模型 ID

    "Gemini 1.5 Flash (推奨)" -> "gemini-1.5-flash"
    "gemini-2.0-flash (推奨・高速)" -> "gemini-2.0-flash"
    無法解析時回傳預設模型。
    """
    if not hint or not hint.strip():
        return settings.gemini_default_model

    text = _ANNOTATION_PATTERN.sub(" ", hint).strip().lower()
    text = re.sub(r"\s+", "-", text)
    match = _MODEL_PATTERN.search(text)
    if not match:
        logger.info(f"無法解析模型名稱 {hint!r}，使用預設模型")
        return settings.gemini_default_model
    return match.group(1)


def build_model_queue(hint: str | None) -> list[str]:
    """建立模型佇列：偏好模型 + 備用清單，去重並保留第一次出現的順序"""
    queue = []
    for model in [parse_model_hint(hint), *settings.gemini_fallback_models]:
        if model and model not in queue:
            queue.append(model)
    return queue


def build_candidates(models: list[str], versions: list[str] | None = None) -> list[tuple[str, str]]:
    """展開為 (模型, API 版本) 組合，同一模型內依版本順序"""
    versions = versions or settings.gemini_api_versions
    return [(model, version) for model in models for version in versions]


def mask_key(api_key: str) -> str:
    """只保留金鑰末 4 碼"""
    key = api_key.strip()
    if len(key) < 4:
        return "****"
    return f"****{key[-4:]}"


def _snippet(text: str | None) -> str:
    if not text:
        return ""
    text = text.strip()
    if len(text) <= ERROR_SNIPPET_LENGTH:
        return text
    return text[:ERROR_SNIPPET_LENGTH] + "…"


# ============================================================
# 請求與回應
# ============================================================


def build_prompt_text(system_prompt: str, user_text: str) -> str:
    """組合 system prompt 與使用者訊息"""
    if system_prompt and system_prompt.strip():
        return f"System Setting: {system_prompt}\n\nUser Message: {user_text}"
    return user_text


def build_request_body(
    prompt_text: str,
    media: MediaPayload | None = None,
    temperature: float | None = None,
) -> dict:
    """組出 generateContent 請求內容"""
    parts: list[dict] = []
    if media is not None:
        parts.append({
            "inlineData": {
                "mimeType": media.mime_type,
                "data": base64.b64encode(media.data).decode("ascii"),
            }
        })
    parts.append({"text": prompt_text})

    return {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": {
            "temperature": settings.gemini_temperature if temperature is None else temperature,
            "maxOutputTokens": settings.gemini_max_output_tokens,
        },
    }


def extract_text(data: dict) -> str:
    """取出第一個 candidate 的文字（合併所有 text part）"""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    texts = [part.get("text", "") for part in parts if isinstance(part, dict)]
    return "".join(texts).strip()


def _empty_reason(data: dict) -> str:
    feedback = data.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        return f"blocked: {feedback['blockReason']}"
    candidates = data.get("candidates") or []
    if candidates and candidates[0].get("finishReason"):
        return f"finishReason: {candidates[0]['finishReason']}"
    return "empty response"


def classify_response(status: int | None, data: dict) -> tuple[AttemptOutcome, str | None, str | None]:
    """分類單次回應

    Returns:
        (outcome, text, error_message)
    """
    if status is None:
        return AttemptOutcome.ERROR, None, data.get("_transport_error", "transport error")

    if status == 200:
        text = extract_text(data)
        if text:
            return AttemptOutcome.SUCCESS, text, None
        return AttemptOutcome.EMPTY, None, _empty_reason(data)

    error = data.get("error") or {}
    message = str(error.get("message") or "")
    error_status = str(error.get("status") or "")
    haystack = f"{message} {error_status}".lower()
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("reason"):
            haystack += f" {detail['reason']}".lower()

    if status == 401 or (
        status in (400, 403) and any(marker in haystack for marker in _INVALID_KEY_MARKERS)
    ):
        return AttemptOutcome.INVALID_KEY, None, message or f"HTTP {status}"
    if status == 404 or error_status == "NOT_FOUND":
        return AttemptOutcome.NOT_FOUND, None, message or "model not found"
    if status == 429 or error_status == "RESOURCE_EXHAUSTED" or "quota" in haystack:
        return AttemptOutcome.QUOTA, None, message or "rate limited"
    return AttemptOutcome.ERROR, None, message or f"HTTP {status}"


async def _post(
    client: httpx.AsyncClient,
    url: str,
    api_key: str,
    body: dict,
) -> tuple[int | None, dict]:
    """送出請求，連線錯誤以 status None 表示"""
    headers = {
        "Content-Type": "application/json",
        # 金鑰放在 header，避免出現在 httpx 的 URL 記錄中
        "x-goog-api-key": api_key,
    }
    try:
        response = await client.post(url, headers=headers, json=body)
    except httpx.HTTPError as e:
        return None, {"_transport_error": f"{type(e).__name__}: {_snippet(str(e))}"}

    try:
        data = response.json()
    except ValueError:
        data = {"error": {"message": _snippet(response.text)}}
    if not isinstance(data, dict):
        data = {}
    return response.status_code, data


async def attempt_completion(
    client: httpx.AsyncClient,
    api_key: str,
    model: str,
    api_version: str,
    body: dict,
) -> CompletionAttempt:
    """嘗試一組 (模型, 版本)，429 時等待後重試一次"""
    url = f"{settings.gemini_api_base}/{api_version}/models/{model}:generateContent"

    status, data = await _post(client, url, api_key, body)
    if status == 429:
        logger.warning(
            f"Gemini 速率限制 {model}@{api_version}，"
            f"{settings.gemini_rate_limit_backoff} 秒後重試"
        )
        await asyncio.sleep(settings.gemini_rate_limit_backoff)
        status, data = await _post(client, url, api_key, body)

    outcome, text, error_message = classify_response(status, data)
    return CompletionAttempt(
        model=model,
        api_version=api_version,
        status=status,
        outcome=outcome,
        error_message=_snippet(error_message) or None,
        text=text,
    )


# ============================================================
# 主流程
# ============================================================


async def generate_reply(
    api_key: str,
    system_prompt: str,
    user_text: str,
    media: MediaPayload | None = None,
    model_hint: str | None = None,
    *,
    temperature: float | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> str:
    """產生 AI 回應

    Args:
        api_key: Gemini API 金鑰
        system_prompt: Bot 的行為指示
        user_text: 使用者訊息（媒體訊息時為說明文字）
        media: 附加的媒體內容
        model_hint: Bot 設定的模型名稱（可含註記）
        temperature: Bot 設定的 temperature，None 使用預設值
        http_client: 指定的 httpx client（測試用），不指定則建立新的

    Returns:
        AI 回應文字

    Raises:
        EmptyPromptError: 金鑰或輸入為空
        InvalidApiKeyError: 金鑰無效或過期
        AllModelsFailedError: 所有組合都失敗
    """
    api_key = (api_key or "").strip()
    if not api_key:
        raise EmptyPromptError("APIキーが入力されていません。")
    if not (user_text or "").strip() and media is None:
        raise EmptyPromptError("メッセージが空です。")

    if http_client is None:
        async with httpx.AsyncClient(timeout=settings.gemini_timeout) as client:
            return await _run_queue(
                client, api_key, system_prompt, user_text, media, model_hint, temperature
            )
    return await _run_queue(
        http_client, api_key, system_prompt, user_text, media, model_hint, temperature
    )


async def _run_queue(
    client: httpx.AsyncClient,
    api_key: str,
    system_prompt: str,
    user_text: str,
    media: MediaPayload | None,
    model_hint: str | None,
    temperature: float | None,
) -> str:
    models = build_model_queue(model_hint)
    candidates = build_candidates(models)
    body = build_request_body(build_prompt_text(system_prompt, user_text), media, temperature)
    key_hint = mask_key(api_key)
    attempts: list[CompletionAttempt] = []

    for model, api_version in candidates:
        attempt = await attempt_completion(client, api_key, model, api_version, body)
        attempts.append(attempt)
        action = OUTCOME_ACTIONS[attempt.outcome]

        if action == ACTION_RETURN:
            logger.info(f"Gemini 回應成功: {model}@{api_version}（第 {len(attempts)} 次嘗試）")
            return attempt.text
        if action == ACTION_ABORT:
            logger.error(f"Gemini 金鑰無效 ({key_hint})，中止模型佇列")
            raise InvalidApiKeyError(key_hint, attempt.error_message or "")

        logger.warning(
            f"Gemini 嘗試失敗 {attempt.summary()} [{attempt.outcome.value}]: {attempt.error_message}"
        )

    # 全部失敗：確認是 prompt 內容問題還是金鑰/帳號整體被擋
    # 媒體照樣附上，只拿掉 system prompt；模型不存在的候選不再使用
    diagnostic_target = next(
        (
            (a.model, a.api_version)
            for a in attempts
            if a.outcome != AttemptOutcome.NOT_FOUND
        ),
        None,
    )
    if settings.gemini_diagnostic_probe and system_prompt.strip() and diagnostic_target:
        model, api_version = diagnostic_target
        minimal_body = build_request_body(user_text or "Hello", media, temperature)
        diagnostic = await attempt_completion(client, api_key, model, api_version, minimal_body)
        attempts.append(diagnostic)
        if diagnostic.outcome == AttemptOutcome.SUCCESS:
            logger.warning("Gemini 最小請求成功，system prompt 可能觸發限制")
            return f"{DIAGNOSTIC_NOTE}\n\n{diagnostic.text}"
        if diagnostic.outcome == AttemptOutcome.INVALID_KEY:
            raise InvalidApiKeyError(key_hint, diagnostic.error_message or "")

    last_error = next(
        (a.error_message for a in reversed(attempts) if a.error_message),
        "",
    )
    logger.error(f"Gemini 所有模型失敗 ({key_hint}): {[a.summary() for a in attempts]}")
    raise AllModelsFailedError(
        key_hint=key_hint,
        prompt_length=len(system_prompt) + len(user_text or ""),
        attempts=attempts,
        last_error=last_error,
    )
