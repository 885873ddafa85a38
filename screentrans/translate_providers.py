import asyncio
import logging
import time
from typing import List, Optional
from .errors import TranslateProviderError

logger = logging.getLogger(__name__)

try:
    import torch
    from transformers import AutoModelForSeq2SeqLM, AutoTokenizer
except ImportError:
    torch = None
    AutoModelForSeq2SeqLM = None
    AutoTokenizer = None

try:
    from argostranslate import translate as argos_translate
except ImportError:
    argos_translate = None

# User-visible language variants -> canonical label
LANGUAGE_ALIASES = {
    "english": "English", "en": "English", "eng": "English",
    "portuguese": "Portuguese", "pt": "Portuguese", "pt-br": "Portuguese", "pt_br": "Portuguese",
    "por": "Portuguese",
    "spanish": "Spanish", "es": "Spanish", "spa": "Spanish",
    "french": "French", "fr": "French", "fra": "French",
    "japanese": "Japanese", "ja": "Japanese", "jp": "Japanese", "jpn": "Japanese", "日本語": "Japanese",
    "korean": "Korean", "ko": "Korean", "kr": "Korean", "kor": "Korean", "한국어": "Korean",
    "chinese": "Chinese", "zh": "Chinese", "zho": "Chinese", "cn": "Chinese",
    "zh-cn": "Chinese", "zh_cn": "Chinese", "zh-hans": "Chinese", "zh_hans": "Chinese",
    "简体中文": "Chinese", "中文": "Chinese",
}

def normalize_language(name: str) -> Optional[str]:
    """Canonical language label, or None for 'auto' and unknown names"""
    if not name:
        return None
    return LANGUAGE_ALIASES.get(name.strip().lower())

class ArgosTranslateProvider:
    """Offline translation with Argos Translate language packages"""

    name = "argos-translate"

    async def is_available(self) -> bool:
        return argos_translate is not None

    @staticmethod
    def normalize_lang(lang: str) -> str:
        normalized = (lang or "auto").strip().lower()
        if normalized == "auto":
            return "en"
        for code in ("pt", "en", "es"):
            if normalized.startswith(code):
                return code
        return normalized

    def _translate_all(self, texts: List[str], source_lang: str, target_lang: str) -> List[str]:
        src = self.normalize_lang(source_lang)
        tgt = self.normalize_lang(target_lang)
        try:
            return [str(argos_translate.translate(text, src, tgt)) for text in texts]
        except Exception as e:
            raise TranslateProviderError(f"Argos failed: {e}") from e

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        results = await self.translate_batch([text], source_lang, target_lang)
        return results[0] if results else ""

    async def translate_batch(self, texts: List[str], source_lang: str, target_lang: str) -> List[str]:
        start_time = time.time()
        results = await asyncio.to_thread(self._translate_all, texts, source_lang, target_lang)
        logger.info(f"Argos translated {len(texts)} item(s) in {time.time() - start_time:.2f}s")
        return results

class TransformersTranslateProvider:
    """Local Transformers model(s): NLLB, M2M100, and Marian (Helsinki opus-mt)."""

    name = "transformers"

    def __init__(self, model_name: str = "facebook/nllb-200-distilled-600M", max_length: int = 128):
        self.model_name = model_name
        self.max_length = max_length
        self.device = None
        self.model = None
        self.tokenizer = None
        self._loaded_model_name = None
        # Language codes for NLLB
        self.lang_map_nllb = {
            "Japanese": "jpn_Jpan",
            "Korean": "kor_Kore",
            "Chinese": "zho_Hans",
            "Spanish": "spa_Latn",
            "French": "fra_Latn",
            "Portuguese": "por_Latn",
            "English": "eng_Latn",
        }
        # Language codes for M2M100 (418M)
        self.lang_map_m2m = {
            "Japanese": "ja",
            "Korean": "ko",
            "Chinese": "zh",
            "Spanish": "es",
            "French": "fr",
            "Portuguese": "pt",
            "English": "en",
        }

    async def is_available(self) -> bool:
        return torch is not None and AutoModelForSeq2SeqLM is not None

    def detect_family(self, name: str = None) -> str:
        """Return model family: 'nllb', 'm2m100', or 'marian'."""
        nm = (name or self.model_name or "").lower()
        if nm.startswith("facebook/m2m100_418m") or nm.endswith("m2m100_418m"):
            return "m2m100"
        if nm.startswith("helsinki-nlp/opus-mt"):
            return "marian"
        return "nllb"

    def resolve_marian_model_for_pair(self, source_lang: str, target_lang: str) -> Optional[str]:
        """Pick a Marian opus-mt checkpoint for the language pair."""
        src = normalize_language(source_lang)
        tgt = normalize_language(target_lang)
        if not src or not tgt:
            return None
        mapping = {
            ("Japanese", "English"): "Helsinki-NLP/opus-mt-ja-en",
            ("English", "Japanese"): "Helsinki-NLP/opus-mt-en-jap",
            ("Korean", "English"): "Helsinki-NLP/opus-mt-ko-en",
            ("Chinese", "English"): "Helsinki-NLP/opus-mt-zh-en",
            ("English", "Chinese"): "Helsinki-NLP/opus-mt-en-zh",
            ("Spanish", "English"): "Helsinki-NLP/opus-mt-es-en",
            ("English", "Spanish"): "Helsinki-NLP/opus-mt-en-es",
            ("French", "English"): "Helsinki-NLP/opus-mt-fr-en",
            ("English", "French"): "Helsinki-NLP/opus-mt-en-fr",
        }
        return mapping.get((src, tgt))

    def effective_model_name(self, source_lang: str, target_lang: str) -> str:
        # The bare "Helsinki-NLP/opus-mt" name selects a checkpoint per direction
        if self.detect_family() == "marian" and self.model_name.lower() == "helsinki-nlp/opus-mt":
            chosen = self.resolve_marian_model_for_pair(source_lang, target_lang)
            if not chosen:
                raise TranslateProviderError(
                    "Helsinki-NLP/opus-mt requires explicit source and target languages "
                    f"(got {source_lang or 'auto'} -> {target_lang or 'auto'})"
                )
            return chosen
        return self.model_name

    def _load_specific_model(self, model_name: str):
        """Load a specific HF model+tokenizer name on the configured device."""
        if self.model is not None and self._loaded_model_name == model_name:
            return
        if self._loaded_model_name and self._loaded_model_name != model_name:
            logger.info("Unloading model %s", self._loaded_model_name)
            self.model = None
            self.tokenizer = None
            self._loaded_model_name = None

        if self.device is None:
            self.device = "cuda" if torch.cuda.is_available() else "cpu"
        logger.info(f"Loading model {model_name} on {self.device}...")
        start_time = time.time()
        try:
            self.model = AutoModelForSeq2SeqLM.from_pretrained(model_name).to(self.device)
            self.tokenizer = AutoTokenizer.from_pretrained(model_name)
        except Exception as e:
            self.model = None
            self.tokenizer = None
            self._loaded_model_name = None
            raise TranslateProviderError(f"Error loading model {model_name}: {e}") from e
        self._loaded_model_name = model_name
        logger.info(f"Model loaded successfully in {time.time() - start_time:.2f}s")

    def _resolve_forced_bos_token_id(self, tgt_lang_code: str) -> Optional[int]:
        """Resolve target language token id across tokenizer variants/versions."""
        tok = self.tokenizer
        if tok is None:
            return None

        get_lang_id = getattr(tok, "get_lang_id", None)
        if callable(get_lang_id):
            try:
                return int(get_lang_id(tgt_lang_code))
            except (KeyError, ValueError, TypeError):
                pass

        lang_code_to_id = getattr(tok, "lang_code_to_id", None)
        if isinstance(lang_code_to_id, dict) and tgt_lang_code in lang_code_to_id:
            return int(lang_code_to_id[tgt_lang_code])

        # Language codes are plain tokens in the NLLB vocab
        token_id = tok.convert_tokens_to_ids(tgt_lang_code)
        if isinstance(token_id, int):
            if getattr(tok, "unk_token_id", None) is not None and token_id == tok.unk_token_id:
                return None
            return token_id
        return None

    def _language_codes(self, family: str, source_lang: str, target_lang: str):
        src = normalize_language(source_lang)
        tgt = normalize_language(target_lang) or "English"
        if family == "nllb":
            return self.lang_map_nllb.get(src), self.lang_map_nllb.get(tgt, "eng_Latn")
        if family == "m2m100":
            return self.lang_map_m2m.get(src), self.lang_map_m2m.get(tgt, "en")
        # marian: direction is baked into the checkpoint
        return None, None

    def _generate(self, texts: List[str], source_lang: str, target_lang: str) -> List[str]:
        model_name = self.effective_model_name(source_lang, target_lang)
        family = self.detect_family(model_name)
        self._load_specific_model(model_name)
        src_code, tgt_code = self._language_codes(family, source_lang, target_lang)

        if src_code and hasattr(self.tokenizer, "src_lang"):
            self.tokenizer.src_lang = src_code

        gen_kwargs = {"max_length": self.max_length}
        if family in ("nllb", "m2m100"):
            forced_bos_token_id = self._resolve_forced_bos_token_id(tgt_code)
            if forced_bos_token_id is None:
                raise TranslateProviderError(
                    f"Unable to resolve target language token id for {target_lang} "
                    f"(code={tgt_code}, tokenizer={type(self.tokenizer).__name__})"
                )
            gen_kwargs["forced_bos_token_id"] = forced_bos_token_id

        try:
            inputs = self.tokenizer(texts, return_tensors="pt", padding=True).to(self.device)
            with torch.no_grad():
                translated_tokens = self.model.generate(**inputs, **gen_kwargs)
            return self.tokenizer.batch_decode(translated_tokens, skip_special_tokens=True)
        except Exception as e:
            raise TranslateProviderError(f"Batch translation error: {e}") from e

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        results = await self.translate_batch([text], source_lang, target_lang)
        return results[0] if results else ""

    async def translate_batch(self, texts: List[str], source_lang: str, target_lang: str) -> List[str]:
        logger.info(f"Translating batch of {len(texts)} items...")
        for i, text in enumerate(texts):
            logger.debug(f"  [{i}] OCR text: {text}")
        batch_start = time.time()
        results = await asyncio.to_thread(self._generate, texts, source_lang, target_lang)
        logger.info(f"Batch translation completed in {time.time() - batch_start:.2f}s")
        return results

def default_translate_providers(model_name: Optional[str] = None) -> list:
    if model_name:
        transformers_provider = TransformersTranslateProvider(model_name)
    else:
        transformers_provider = TransformersTranslateProvider()
    return [ArgosTranslateProvider(), transformers_provider]
