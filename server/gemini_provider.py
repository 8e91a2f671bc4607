"""Gemini content provider implementation."""

import base64
import json
import logging
import time
import google.generativeai as genai

from core.interfaces import ContentProvider

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def fallback_flashcard(character: str) -> dict:
    return {
        'character': character,
        'pinyin': '?',
        'definition': '...',
        'emoji': '❓'
    }


class GeminiProvider(ContentProvider):
    """Gemini content provider implementation."""

    def __init__(self, api_key: str, model_name: str = 'gemini-2.0-flash',
                 image_model_name: str = 'gemini-2.0-flash-preview-image-generation'):
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)
        self.image_model = genai.GenerativeModel(image_model_name)
        self.model_name = model_name

    def _execute(self, prompt: str) -> tuple[str, int]:
        start_time = time.time()
        response = self.model.generate_content(
            prompt,
            generation_config={'response_mime_type': 'application/json'}
        )
        end_time = time.time()
        ms = int((end_time - start_time) * 1000)
        return (response.text, ms)

    def _parse_json(self, response: str, what: str):
        """Parse a JSON reply, logging a diagnosis when it is malformed."""
        cleaned = response.strip().replace('```json', '').replace('```', '')
        try:
            return json.loads(cleaned)
        except ValueError as e:
            logger.error(f"Failed to parse {what}: {e}")
            logger.error(f"Raw response:\n{response}")
            if '{' not in cleaned and '[' not in cleaned:
                logger.error("Diagnosis: No JSON object or array found in response")
            elif cleaned.count('{') != cleaned.count('}'):
                logger.error(f"Diagnosis: Mismatched braces - {{ count: {cleaned.count('{')}, }} count: {cleaned.count('}')}")
            else:
                logger.error("Diagnosis: Unknown parsing issue - possibly malformed JSON")
            return None

    def get_character_details(self, word: str) -> dict | None:
        prompt = f"""
            Give the dictionary details for the Chinese word or character "{word}".

            Respond with ONLY a JSON object in this exact format:
            {{"pinyin": "numbered pinyin, lowercase, e.g. hao3 or ma1 ma",
              "radical": "the radical of the first character",
              "stroke_count": number of strokes of the first character}}
        """
        try:
            response, ms = self._execute(prompt)
        except Exception as e:
            logger.error(f"Character details request failed for {word}: {e}")
            return None

        details = self._parse_json(response, 'character details')
        if not isinstance(details, dict):
            return None

        missing_keys = [k for k in ('pinyin', 'radical', 'stroke_count') if k not in details]
        if missing_keys:
            logger.warning(f"Character details missing keys: {missing_keys}")
            logger.warning(f"Raw response:\n{response}")
            return None

        try:
            details['stroke_count'] = int(details['stroke_count'])
        except (TypeError, ValueError):
            logger.warning(f"Invalid stroke count: {details['stroke_count']}")
            details['stroke_count'] = 0
        logger.info(f"Character details for {word} in {ms}ms")
        return details

    def get_flashcard(self, character: str) -> dict:
        prompt = f"""
            Generate flashcard data for the Chinese character: "{character}".

            Respond with ONLY a JSON object with:
            - "pinyin": Numbered pinyin (e.g. for 好 return 'hao3', for 妈妈 return 'ma1 ma'). Lowercase.
            - "definition": Simple English meaning (1-3 words max).
            - "emoji": A single emoji that best represents the meaning.
        """
        try:
            response, ms = self._execute(prompt)
        except Exception as e:
            logger.error(f"Flashcard request failed for {character}: {e}")
            return fallback_flashcard(character)

        data = self._parse_json(response, 'flashcard')
        if not isinstance(data, dict) or not data.get('pinyin'):
            return fallback_flashcard(character)

        card = fallback_flashcard(character)
        card.update({k: data[k] for k in ('pinyin', 'definition', 'emoji') if data.get(k)})
        return card

    def get_sentence_pinyin(self, sentence: str) -> list[str]:
        prompt = f"""
            Give the pinyin with tone marks for every character of this Chinese sentence,
            skipping punctuation: "{sentence}"

            Respond with ONLY a JSON array of strings, one per character, in order.
            Example for 你好: ["nǐ", "hǎo"]
        """
        try:
            response, ms = self._execute(prompt)
        except Exception as e:
            logger.error(f"Sentence pinyin request failed: {e}")
            return []

        data = self._parse_json(response, 'sentence pinyin')
        if not isinstance(data, list):
            return []
        return [str(p) for p in data]

    def get_story_image(self, sentence: str) -> str | None:
        prompt = (
            f'A cute, colorful children\'s book illustration for the sentence "{sentence}". '
            'No text in the image.'
        )
        try:
            response = self.image_model.generate_content(
                prompt,
                generation_config={'response_modalities': ['TEXT', 'IMAGE']}
            )
            for part in response.candidates[0].content.parts:
                inline = getattr(part, 'inline_data', None)
                if inline and inline.data:
                    encoded = base64.b64encode(inline.data).decode('ascii')
                    return f"data:{inline.mime_type or 'image/png'};base64,{encoded}"
            logger.warning("Image response contained no image data")
        except Exception as e:
            logger.error(f"Story image generation failed: {e}")
        return None

    def get_distractors(self, answer: str, question: str) -> list[str]:
        prompt = f"""
            Generate 3 plausible but incorrect Chinese character/word options for filling in the blank.
            Context: "{question}"
            Correct Answer: "{answer}"
            Options should be distinct from the correct answer.

            Respond with ONLY a JSON array of 3 strings.
        """
        try:
            response, ms = self._execute(prompt)
        except Exception as e:
            logger.error(f"Distractor request failed for {answer}: {e}")
            return []

        data = self._parse_json(response, 'distractors')
        if not isinstance(data, list):
            return []
        distractors = [str(d).strip() for d in data if str(d).strip() and str(d).strip() != answer]
        logger.info(f"{len(distractors)} distractors for {answer} in {ms}ms")
        return distractors
