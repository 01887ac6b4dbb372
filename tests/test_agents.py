"""Tests for the LLM-backed generators using a mocked client."""

import pytest
from unittest.mock import AsyncMock

from config.exceptions import (
    GenerationError,
    LLMError,
    LLMResponseParseError,
    UnsupportedLanguageError,
    ValidationError,
)


class TestContentGeneratorHelpers:
    def test_section_field_names(self):
        from agents.content_generator import section_field
        assert section_field(0, "introduction") == "chapter_1_introduction"
        assert section_field(9, "practical_examples") == "chapter_10_practical_examples"

    def test_build_section_fields_covers_every_pair(self):
        from agents.content_generator import SECTIONS, build_section_fields
        fields = build_section_fields(["Um", "Dois"], "Finanças")
        assert len(fields) == 2 * len(SECTIONS)
        assert list(fields)[:4] == [
            "chapter_1_introduction", "chapter_1_development",
            "chapter_1_practical_examples", "chapter_1_conclusion",
        ]
        assert all(f["type"] == "string" for f in fields.values())

    def test_normalize_pads_short_list(self):
        from agents.content_generator import normalize_chapter_titles
        assert normalize_chapter_titles(["A", " ", "B"], 4) == ["A", "B", "Chapter 3", "Chapter 4"]

    def test_normalize_truncates_long_list(self):
        from agents.content_generator import normalize_chapter_titles
        assert normalize_chapter_titles(["A", "B", "C"], 2) == ["A", "B"]

    def test_section_labels_fallback_to_english(self):
        from agents.content_generator import section_labels
        assert section_labels("pt")[0] == "Introdução"
        assert section_labels("ja") == ["Introduction", "Development", "Practical Examples", "Conclusion"]


class TestContentGenerator:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("num_chapters", list(range(3, 11)))
    async def test_returns_exact_chapter_count(
        self, mock_llm, settings, structure_response, content_response, num_chapters,
    ):
        from agents.content_generator import ContentGenerator
        mock_llm.chat_json = AsyncMock(side_effect=[
            structure_response(num_chapters),
            content_response(num_chapters),
        ])
        ebook = await ContentGenerator(mock_llm, settings).generate("Finanças", num_chapters, "pt")

        assert len(ebook.chapters) == num_chapters
        assert all(ch.content.strip() for ch in ebook.chapters)
        assert mock_llm.chat_json.await_count == 2

    @pytest.mark.asyncio
    async def test_short_title_list_is_padded(self, mock_llm, settings, content_response):
        from agents.content_generator import ContentGenerator
        mock_llm.chat_json = AsyncMock(side_effect=[
            {"title": "Guia", "chapters": ["Só um"]},
            content_response(3),
        ])
        ebook = await ContentGenerator(mock_llm, settings).generate("Finanças", 3)
        assert [ch.title for ch in ebook.chapters] == ["Só um", "Chapter 2", "Chapter 3"]

    @pytest.mark.asyncio
    async def test_content_has_sections_in_order(self, mock_llm, settings, structure_response, content_response):
        from agents.content_generator import ContentGenerator
        mock_llm.chat_json = AsyncMock(side_effect=[structure_response(3), content_response(3)])
        ebook = await ContentGenerator(mock_llm, settings).generate("Finanças", 3, "pt")

        content = ebook.chapters[0].content
        positions = [content.index(f"## {label}") for label in
                     ("Introdução", "Desenvolvimento", "Exemplos Práticos", "Conclusão")]
        assert positions == sorted(positions)
        assert "Text for chapter_1_development." in content

    @pytest.mark.asyncio
    async def test_missing_section_fails_whole_generation(
        self, mock_llm, settings, structure_response, content_response,
    ):
        from agents.content_generator import ContentGenerator
        content = content_response(3)
        content["chapter_2_conclusion"] = "  "
        mock_llm.chat_json = AsyncMock(side_effect=[structure_response(3), content])
        with pytest.raises(GenerationError):
            await ContentGenerator(mock_llm, settings).generate("Finanças", 3)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("num_chapters", [2, 11])
    async def test_out_of_range_chapter_count(self, mock_llm, settings, num_chapters):
        from agents.content_generator import ContentGenerator
        with pytest.raises(ValidationError):
            await ContentGenerator(mock_llm, settings).generate("Finanças", num_chapters)
        mock_llm.chat_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_parse_error_propagates(self, mock_llm, settings):
        from agents.content_generator import ContentGenerator
        mock_llm.chat_json = AsyncMock(side_effect=LLMResponseParseError("bad json"))
        with pytest.raises(LLMResponseParseError):
            await ContentGenerator(mock_llm, settings).generate("Finanças", 3)

    @pytest.mark.asyncio
    async def test_chapters_as_string_is_rejected(self, mock_llm, settings, content_response):
        from agents.content_generator import ContentGenerator
        mock_llm.chat_json = AsyncMock(side_effect=[
            {"title": "Guia", "chapters": "Intro, Meio, Fim"},
            content_response(3),
        ])
        with pytest.raises(GenerationError, match="list"):
            await ContentGenerator(mock_llm, settings).generate("Finanças", 3)
        assert mock_llm.chat_json.await_count == 1

    @pytest.mark.asyncio
    async def test_front_and_back_matter(self, mock_llm, settings, structure_response, content_response):
        from agents.content_generator import ContentGenerator
        structure = structure_response(3)
        structure["subtitle"] = "Do zero à liberdade"
        content = content_response(3)
        content.update({
            "chapter_1_hook": "No próximo capítulo, o primeiro pilar.",
            "reader_letter": "Querido leitor,",
            "bonus": "Planilha de gastos.",
            "about_author": "Ana é planejadora.",
            "cta_next": "Comece hoje.",
        })
        mock_llm.chat_json = AsyncMock(side_effect=[structure, content])

        ebook = await ContentGenerator(mock_llm, settings).generate("Finanças", 3, "pt", author="Ana")

        assert ebook.subtitle == "Do zero à liberdade"
        assert ebook.chapters[0].hook == "No próximo capítulo, o primeiro pilar."
        assert ebook.chapters[1].hook == ""
        assert ebook.matter() == {
            "reader_letter": "Querido leitor,", "bonus": "Planilha de gastos.",
            "about_author": "Ana é planejadora.", "cta_next": "Comece hoje.",
        }
        schema = mock_llm.chat_json.await_args_list[1].kwargs["schema"]
        assert "reader_letter" in schema["properties"]
        assert "Ana" in schema["properties"]["about_author"]["description"]
        assert "reader_letter" not in schema["required"]

    def test_preview_and_to_dict(self, generated_ebook):
        assert generated_ebook.preview(10) == "## Introdu"
        data = generated_ebook.to_dict()
        assert data["title"] == "Guia Completo"
        assert len(data["chapters"]) == 3
        assert data["chapters"][0]["hook"] == ""
        assert data["cta_next"] == ""


class TestTranslator:
    def test_validate_languages_normalizes(self):
        from agents.translator import validate_languages
        assert validate_languages(" PT,en,pt , es") == ["pt", "en", "es"]
        assert validate_languages(["fr"]) == ["fr"]

    def test_validate_languages_rejects_unknown(self):
        from agents.translator import validate_languages
        with pytest.raises(UnsupportedLanguageError):
            validate_languages(["pt", "xx"])

    def test_validate_languages_rejects_empty(self):
        from agents.translator import validate_languages
        with pytest.raises(ValidationError):
            validate_languages(" , ")

    @pytest.mark.asyncio
    async def test_unsupported_code_fails_before_llm_call(self, mock_llm, settings):
        from agents.translator import Translator
        with pytest.raises(UnsupportedLanguageError):
            await Translator(mock_llm, settings).translate("Olá", "xx")
        mock_llm.chat.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_translate_uses_target_language_name(self, mock_llm, settings):
        from agents.translator import Translator
        mock_llm.chat = AsyncMock(return_value="  Hello  ")
        result = await Translator(mock_llm, settings).translate("Olá", "en")
        assert result == "Hello"
        assert "English" in mock_llm.chat.await_args.kwargs["system_prompt"]

    @pytest.mark.asyncio
    async def test_empty_text_skips_llm(self, mock_llm, settings):
        from agents.translator import Translator
        assert await Translator(mock_llm, settings).translate("", "en") == ""
        mock_llm.chat.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_model_output_raises(self, mock_llm, settings):
        from agents.translator import Translator
        mock_llm.chat = AsyncMock(return_value="")
        with pytest.raises(LLMError):
            await Translator(mock_llm, settings).translate("Olá", "en")

    @pytest.mark.asyncio
    async def test_translate_ebook_field_by_field(self, mock_llm, settings, generated_ebook):
        from agents.translator import Translator
        mock_llm.chat = AsyncMock(side_effect=lambda system_prompt, user_prompt, model=None: f"EN:{user_prompt}")
        translated = await Translator(mock_llm, settings).translate_ebook(generated_ebook, "en")

        assert translated.language == "en"
        assert translated.title == "EN:Guia Completo"
        assert [ch.title for ch in translated.chapters] == ["EN:Capítulo 1", "EN:Capítulo 2", "EN:Capítulo 3"]
        # title + (title, content) per chapter; blank subtitle, hooks and matter skip the model
        assert mock_llm.chat.await_count == 1 + 2 * 3

    @pytest.mark.asyncio
    async def test_translate_ebook_carries_matter(self, mock_llm, settings, generated_ebook):
        from agents.translator import Translator
        generated_ebook.subtitle = "Subtítulo"
        generated_ebook.chapters[0].hook = "Gancho"
        generated_ebook.bonus = "Bônus"
        mock_llm.chat = AsyncMock(side_effect=lambda system_prompt, user_prompt, model=None: f"EN:{user_prompt}")

        translated = await Translator(mock_llm, settings).translate_ebook(generated_ebook, "en")

        assert translated.subtitle == "EN:Subtítulo"
        assert translated.chapters[0].hook == "EN:Gancho"
        assert translated.bonus == "EN:Bônus"
        assert translated.reader_letter == ""


class TestMetadataGenerator:
    @pytest.mark.asyncio
    async def test_defaults_fill_blank_fields(self, mock_llm, settings):
        from agents.metadata_generator import DEFAULT_PRICE, MetadataGenerator
        mock_llm.chat_json = AsyncMock(return_value={
            "optimizedTitle": "", "shortDescription": "Curto", "longDescription": "Longo",
            "keywords": ["a", " ", "b"], "categories": "not a list",
            "suggestedPrice": "", "targetAudience": "Iniciantes",
        })
        metadata = await MetadataGenerator(mock_llm, settings).generate("Guia", "Finanças", "preview")
        assert metadata.optimized_title == "Guia"
        assert metadata.suggested_price == DEFAULT_PRICE
        assert metadata.keywords == ["a", "b"]
        assert metadata.categories == []

    def test_format_for_amazon(self):
        from agents.metadata_generator import OptimizedMetadata, format_for_platform
        from models.enums import Platform
        metadata = OptimizedMetadata(optimized_title="Guia", keywords=["a", "b"], categories=["Negócios"])
        shaped = format_for_platform(metadata, Platform.AMAZON_KDP)
        assert shaped["keywords"] == ["a", "b"]
        assert shaped["primary_category"] == "Negócios"
        assert shaped["secondary_category"] is None

    def test_format_for_hotmart(self):
        from agents.metadata_generator import OptimizedMetadata, format_for_platform
        from models.enums import Platform
        metadata = OptimizedMetadata(optimized_title="Guia", keywords=["a", "b"])
        shaped = format_for_platform(metadata, Platform.HOTMART)
        assert shaped["product_name"] == "Guia"
        assert shaped["tags"] == "a, b"


class TestTrendingTopicsAgent:
    @pytest.mark.asyncio
    async def test_find_topics_filters_blank(self, mock_llm, settings):
        from agents.trending_agent import TrendingTopicsAgent
        mock_llm.chat_json = AsyncMock(return_value={"topics": [
            {"topic": "IA para pequenos negócios", "description": "d", "relevance": "r"},
            {"topic": " "},
            "garbage",
        ]})
        topics = await TrendingTopicsAgent(mock_llm, settings).find_topics("Negócios", 5)
        assert [t.topic for t in topics] == ["IA para pequenos negócios"]

    @pytest.mark.asyncio
    async def test_next_topic_falls_back(self, mock_llm, settings):
        from agents.trending_agent import TrendingTopicsAgent
        mock_llm.chat_json = AsyncMock(return_value={"topics": []})
        topic = await TrendingTopicsAgent(mock_llm, settings).next_topic()
        assert topic == settings.trending_fallback_topic


class TestPlatformRecommender:
    @pytest.mark.asyncio
    async def test_sorted_and_filtered(self, mock_llm, settings):
        from agents.platform_recommender import PlatformRecommender
        mock_llm.chat_json = AsyncMock(return_value={"recommendations": [
            {"platform": "kiwify", "score": 70, "reason": "r", "target_audience": "t", "sales_potential": "médio"},
            {"platform": "unknown", "score": 99},
            {"platform": "hotmart", "score": 92, "reason": "r", "target_audience": "t", "sales_potential": "alto"},
        ]})
        recs = await PlatformRecommender(mock_llm, settings).recommend("Finanças", "Guia")
        assert [r["platform"] for r in recs] == ["hotmart", "kiwify"]

    @pytest.mark.asyncio
    async def test_llm_failure_returns_fallback(self, mock_llm, settings):
        from agents.platform_recommender import FALLBACK_RECOMMENDATIONS, PlatformRecommender
        mock_llm.chat_json = AsyncMock(side_effect=LLMError("down"))
        recs = await PlatformRecommender(mock_llm, settings).recommend("Finanças", "Guia")
        assert recs == FALLBACK_RECOMMENDATIONS
        assert recs is not FALLBACK_RECOMMENDATIONS
