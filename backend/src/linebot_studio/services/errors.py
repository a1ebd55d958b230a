"""統一錯誤層級

所有服務層錯誤的基底類別。Webhook 端點永遠回 200，
因此這裡的 status_code 只用在管理用 API（rich menu、line-info）。
"""


class ServiceError(Exception):
    """服務層基底錯誤

    Attributes:
        message: 人類可讀的錯誤訊息
        code: 機器可讀的錯誤代碼（如 NOT_FOUND、INVALID_API_KEY）
        status_code: HTTP 狀態碼
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ServiceError):
    """驗證錯誤"""

    def __init__(self, message: str):
        super().__init__(message, "VALIDATION_ERROR", 400)


class ExternalServiceError(ServiceError):
    """外部服務錯誤"""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}", "EXTERNAL_ERROR", 502)


class MediaFetchError(ServiceError):
    """LINE 媒體內容下載失敗"""

    def __init__(self, message_id: str, reason: str):
        self.message_id = message_id
        self.reason = reason
        super().__init__(f"メディアの取得に失敗しました ({reason})", "MEDIA_FETCH_FAILED", 502)


class CompletionError(ServiceError):
    """AI 回應生成錯誤的基底

    message 會直接顯示給使用者（通常是正在測試設定的 Bot 管理者），
    所以內容只能包含截斷過的診斷片段，不能有完整金鑰。
    """

    def __init__(self, message: str, code: str = "COMPLETION_FAILED"):
        super().__init__(message, code, 502)


class EmptyPromptError(CompletionError):
    """缺少 API 金鑰或輸入內容"""

    def __init__(self, message: str):
        super().__init__(message, "EMPTY_INPUT")


class InvalidApiKeyError(CompletionError):
    """API 金鑰無效或過期，整個模型佇列立即中止"""

    def __init__(self, key_hint: str, detail: str = ""):
        self.key_hint = key_hint
        self.detail = detail
        message = (
            f"APIキーが無効、または期限切れです (キー末尾: {key_hint})。"
            "Google AI Studioで新しいキーを作成してください。"
        )
        if detail:
            message += f"\n詳細: {detail}"
        super().__init__(message, "INVALID_API_KEY")


class AllModelsFailedError(CompletionError):
    """所有模型與 API 版本都嘗試失敗"""

    def __init__(
        self,
        key_hint: str,
        prompt_length: int,
        attempts: list,
        last_error: str = "",
    ):
        self.key_hint = key_hint
        self.prompt_length = prompt_length
        self.attempts = list(attempts)
        self.last_error = last_error

        tried = ", ".join(attempt.summary() for attempt in self.attempts) or "なし"
        message = (
            "すべてのAIモデルで応答の生成に失敗しました。\n"
            f"キー末尾: {key_hint} / プロンプト長: {prompt_length}文字\n"
            f"試行: {tried}"
        )
        if last_error:
            message += f"\n最後のエラー: {last_error}"
        super().__init__(message, "ALL_MODELS_FAILED")
