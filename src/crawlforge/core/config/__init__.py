from .main import (
    AIConfig,
    AnalysisConfig,
    BrowserConfig,
    CaptureConfig,
    CorrectionConfig,
    CrawlforgeConfig,
    GenerationConfig,
    SandboxConfig,
    ViewportConfig,
)

__all__ = [
    "AIConfig",
    "AnalysisConfig",
    "BrowserConfig",
    "CaptureConfig",
    "CorrectionConfig",
    "CrawlforgeConfig",
    "GenerationConfig",
    "SandboxConfig",
    "ViewportConfig",
]
