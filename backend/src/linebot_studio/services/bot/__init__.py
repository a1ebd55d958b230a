"""Bot 核心模組

提供 webhook 處理流程共用的資料結構：
- message: InboundEvent、CompletionAttempt、RichReply 等資料模型
"""
