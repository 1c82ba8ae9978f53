"""
Configuration for the suggestion engine
=======================================

Central configuration for the editor surface, the analysis scheduler and
the two suggestion producers (local dictionary and remote semantic
analyzer). Values come from defaults below, overridden by environment
variables (a .env file is honored).
"""

import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

TRUTHY_ENV_VALUES = {"1", "true", "yes", "on"}


class EditorSettings(BaseModel):
    """Timing and scope of the automatic analysis passes."""

    idle_delay_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Idle time after the last keystroke before the incremental pass runs",
    )
    word_check_delay_seconds: float = Field(
        default=0.15,
        ge=0,
        description="Debounce for the immediate dictionary check after a completed word",
    )
    word_check_window_words: int = Field(
        default=5,
        ge=1,
        description="How many trailing words the immediate dictionary check covers",
    )
    min_word_letters: int = Field(
        default=2,
        ge=1,
        description="Minimum letters in the preceding token for a keystroke to complete a word",
    )
    min_analysis_length: int = Field(
        default=20,
        ge=0,
        description="Texts shorter than this are never sent to the semantic analyzer",
    )
    autosave_delay_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Inactivity before a changed document is saved automatically",
    )
    section_cache_size: int = Field(
        default=256,
        ge=0,
        description="Section hashes whose suggestions are remembered per document session",
    )
    verbose: bool = Field(default=False, description="Emit phase headers/timings for each pass")


class SectionSettings(BaseModel):
    """Partitioning rules used to scope incremental re-analysis."""

    paragraph_threshold: int = Field(
        default=200,
        ge=1,
        description="Paragraphs shorter than this are kept as a single section",
    )
    min_sentence_length: int = Field(
        default=10,
        ge=0,
        description="Sentences shorter than this are never emitted as their own section",
    )
    abbreviation_max_length: int = Field(
        default=10,
        ge=0,
        description="Candidate sentences shorter than this ending in an uppercase letter are treated as abbreviations",
    )
    keep_short_sentences: bool = Field(
        default=True,
        description="Carry short sentences into a neighbouring section instead of dropping them",
    )


class LocatorSettings(BaseModel):
    """Tuning for PositionLocator's context and fuzzy stages."""

    context_slack: int = Field(
        default=10,
        ge=0,
        description="Extra characters searched around an occurrence when matching context",
    )
    fuzzy_window: int = Field(
        default=500,
        ge=1,
        description="Size of the text window centered on the hint for fuzzy matching",
    )
    fuzzy_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Minimum fraction of words that must be present in a fuzzy window",
    )
    distance_divisor: float = Field(
        default=1000.0,
        gt=0,
        description="Penalty divisor for distance from the hint when ranking fuzzy candidates",
    )


class AnalyzerSettings(BaseModel):
    """Remote semantic analyzer (client side and the /analyze endpoint)."""

    url: str = Field(
        default="http://localhost:8000/analyze",
        description="Endpoint the editor posts section text to",
    )
    model: str = Field(default="gpt-4o", description="OpenAI model used by the /analyze endpoint")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=30.0, gt=0, description="Client-side request timeout")
    min_confidence: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Suggestions at or below this confidence are discarded",
    )
    max_suggestions: int = Field(default=15, ge=1, description="Upper bound of suggestions per call")
    max_retries: int = Field(default=2, ge=0, description="Retries for the OpenAI call")
    retry_delay_seconds: float = Field(default=1.0, ge=0)


class DictionarySettings(BaseModel):
    """Local dictionary assets (Hunspell-style affix rules + word list)."""

    aff_source: str = Field(
        default="data/dictionary/en_US.aff",
        description="Path or http(s) URL of the affix rules",
    )
    dic_source: str = Field(
        default="data/dictionary/en_US.dic",
        description="Path or http(s) URL of the word list",
    )
    max_edit_distance: int = Field(default=2, ge=1, le=3, description="Largest edit distance SymSpell indexes and searches")
    prefix_length: int = Field(default=7, ge=1, description="SymSpell prefix length; longer uses more memory")
    fetch_timeout_seconds: float = Field(default=10.0, gt=0)


class StorageSettings(BaseModel):
    """Document store persistence."""

    db_path: str = Field(default="documents.db", description="SQLite file for documents and settings")


class Config(BaseModel):
    """Configuration settings for the suggestion engine."""

    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key for the /analyze endpoint")
    EDITOR: EditorSettings = Field(default_factory=EditorSettings)
    SECTIONS: SectionSettings = Field(default_factory=SectionSettings)
    LOCATOR: LocatorSettings = Field(default_factory=LocatorSettings)
    ANALYZER: AnalyzerSettings = Field(default_factory=AnalyzerSettings)
    DICTIONARY: DictionarySettings = Field(default_factory=DictionarySettings)
    STORAGE: StorageSettings = Field(default_factory=StorageSettings)

    DEFAULT_PREFERRED_TONE: str = Field(default="professional")
    DEFAULT_WRITING_GOALS: List[str] = Field(default_factory=lambda: ["clarity", "grammar"])

    APP_HOST: str = Field(default="0.0.0.0", description="FastAPI host")
    APP_PORT: int = Field(default=8000, description="FastAPI port")

    def __init__(self, **data):
        super().__init__(**data)
        self.load_from_environment()

    def load_from_environment(self):
        """Load configuration overrides from environment variables."""
        self.OPENAI_API_KEY = os.getenv("OPENAI_KEY", "") or os.getenv("OPENAI_API_KEY", "")

        idle_override = _float_env("EDITOR_IDLE_DELAY_SECONDS")
        if idle_override is not None and idle_override > 0:
            self.EDITOR.idle_delay_seconds = idle_override

        autosave_override = _float_env("EDITOR_AUTOSAVE_DELAY_SECONDS")
        if autosave_override is not None and autosave_override > 0:
            self.EDITOR.autosave_delay_seconds = autosave_override

        word_delay_override = _float_env("EDITOR_WORD_CHECK_DELAY_SECONDS")
        if word_delay_override is not None and word_delay_override >= 0:
            self.EDITOR.word_check_delay_seconds = word_delay_override

        verbose_override = os.getenv("EDITOR_VERBOSE")
        if verbose_override:
            self.EDITOR.verbose = verbose_override.lower() in TRUTHY_ENV_VALUES

        short_override = os.getenv("SECTIONS_KEEP_SHORT_SENTENCES")
        if short_override:
            self.SECTIONS.keep_short_sentences = short_override.lower() in TRUTHY_ENV_VALUES

        analyzer_url = os.getenv("ANALYZER_URL")
        if analyzer_url:
            self.ANALYZER.url = analyzer_url

        analyzer_model = os.getenv("ANALYZER_MODEL")
        if analyzer_model:
            self.ANALYZER.model = analyzer_model

        timeout_override = _float_env("ANALYZER_TIMEOUT_SECONDS")
        if timeout_override is not None and timeout_override > 0:
            self.ANALYZER.timeout_seconds = timeout_override

        aff_source = os.getenv("DICTIONARY_AFF_SOURCE")
        if aff_source:
            self.DICTIONARY.aff_source = aff_source

        dic_source = os.getenv("DICTIONARY_DIC_SOURCE")
        if dic_source:
            self.DICTIONARY.dic_source = dic_source

        db_path = os.getenv("DOCUMENTS_DB_PATH")
        if db_path:
            self.STORAGE.db_path = db_path

        self.APP_HOST = os.getenv("APP_HOST", self.APP_HOST)
        port_override = os.getenv("APP_PORT")
        if port_override:
            try:
                self.APP_PORT = int(port_override)
            except ValueError:
                pass


def _float_env(name: str):
    """Read a float environment variable, ignoring unparsable values."""
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


# Global configuration instance
config = Config()
