#!/usr/bin/env python3
"""
Tests for the response normalizer.

This module tests how raw chat completion bodies are turned into validated
translation JSON, including fenced answers, surrounding commentary, double
encoding, and malformed envelopes.
"""

import json
import os
import sys
import unittest

# Add parent directory to path for module import
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from response_normalizer import (
    ContentFound,
    MalformedResponse,
    ResponseStep,
    extract_content,
    find_first_json_object,
    locate_content,
    parse_translation_result,
    strip_code_fence,
    unwrap_double_encoded,
)
from translator_errors import ResponseShapeError


def api_body(content):
    """Build a chat completion response body around a model answer."""
    return json.dumps(
        {
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": "stop",
                }
            ],
        }
    )


class TestLocateContent(unittest.TestCase):
    """Tests for the typed choices[0].message.content traversal."""

    def test_content_found(self):
        document = json.loads(api_body('{"de": {}}'))
        self.assertEqual(locate_content(document), ContentFound('{"de": {}}'))

    def test_malformed_steps(self):
        test_cases = [
            # Format: (document, expected failing step)
            ([], ResponseStep.CHOICES),
            ({}, ResponseStep.CHOICES),
            ({"choices": "nope"}, ResponseStep.CHOICES),
            ({"choices": []}, ResponseStep.FIRST_CHOICE),
            ({"choices": ["text"]}, ResponseStep.FIRST_CHOICE),
            ({"choices": [{}]}, ResponseStep.MESSAGE),
            ({"choices": [{"message": None}]}, ResponseStep.MESSAGE),
            ({"choices": [{"message": {}}]}, ResponseStep.CONTENT),
            ({"choices": [{"message": {"content": 42}}]}, ResponseStep.CONTENT),
        ]

        for document, expected_step in test_cases:
            with self.subTest(document=document):
                located = locate_content(document)
                self.assertIsInstance(located, MalformedResponse)
                self.assertEqual(located.step, expected_step)


class TestCodeFence(unittest.TestCase):
    """Tests for code fence stripping."""

    def test_strip_json_fence(self):
        self.assertEqual(
            strip_code_fence('```json\n{"de": {"a": "b"}}\n```'),
            '{"de": {"a": "b"}}',
        )

    def test_strip_fence_case_insensitive(self):
        self.assertEqual(strip_code_fence('```JSON\n{"a": {}}\n```'), '{"a": {}}')
        self.assertEqual(strip_code_fence('```Json\n{"a": {}}\n```'), '{"a": {}}')

    def test_strip_plain_fence(self):
        self.assertEqual(strip_code_fence('  ```\n{"a": {}}\n```  '), '{"a": {}}')

    def test_unfenced_text_is_unchanged(self):
        text = 'Here you go: {"a": {}}'
        self.assertEqual(strip_code_fence(text), text)


class TestFindFirstJsonObject(unittest.TestCase):
    """Tests for the brace depth scanner."""

    def test_no_object(self):
        self.assertIsNone(find_first_json_object("no braces here"))
        self.assertIsNone(find_first_json_object(""))

    def test_unbalanced_object(self):
        self.assertIsNone(find_first_json_object('{"de": {"a": "b"}'))

    def test_object_with_commentary(self):
        self.assertEqual(
            find_first_json_object('Sure! {"de": {"a": "b"}} Hope this helps.'),
            '{"de": {"a": "b"}}',
        )

    def test_only_first_object_is_returned(self):
        self.assertEqual(find_first_json_object('{"a": {}} {"b": {}}'), '{"a": {}}')

    def test_stray_closing_brace_before_object_is_ignored(self):
        self.assertEqual(find_first_json_object('} oops {"a": {}}'), '{"a": {}}')

    def test_braces_inside_strings_are_counted(self):
        """The scanner does not understand string literals."""
        self.assertEqual(
            find_first_json_object('Use {name} here: {"de": {"a": "b"}}'),
            "{name}",
        )
        self.assertEqual(
            find_first_json_object('Result: {"de": {"a": "x } y"}}'),
            '{"de": {"a": "x } y"}',
        )


class TestUnwrapDoubleEncoded(unittest.TestCase):
    """Tests for double encoded JSON repair."""

    def test_object_is_unchanged(self):
        text = '{"de": {"a": "b"}}'
        self.assertEqual(unwrap_double_encoded(text), text)

    def test_string_holding_object_is_unwrapped(self):
        inner = '{"de": {"a": "b"}}'
        self.assertEqual(unwrap_double_encoded(json.dumps(inner)), inner)

    def test_string_holding_non_object_is_unchanged(self):
        for text in [json.dumps("plain text"), json.dumps("[1, 2]"), "not json"]:
            with self.subTest(text=text):
                self.assertEqual(unwrap_double_encoded(text), text)


class TestExtractContent(unittest.TestCase):
    """Tests for the full extraction pipeline."""

    def test_plain_json_answer(self):
        self.assertEqual(
            extract_content(api_body('{"de": {"hello": "Hallo"}}')),
            '{"de": {"hello": "Hallo"}}',
        )

    def test_answer_with_commentary_and_fence(self):
        content = 'Here you go:\n```json\n{"de": {"hello": "Hallo"}}\n```\nThanks!'
        self.assertEqual(extract_content(api_body(content)), '{"de": {"hello": "Hallo"}}')

    def test_fenced_answer(self):
        content = '```json\n{"de": {"hello": "Hallo"}}\n```'
        self.assertEqual(extract_content(api_body(content)), '{"de": {"hello": "Hallo"}}')

    def test_double_encoded_answer(self):
        content = json.dumps('{"de": {"hello": "Hallo"}}')
        self.assertEqual(extract_content(api_body(content)), '{"de": {"hello": "Hallo"}}')

    def test_object_inside_array_is_recovered(self):
        content = '[{"de": {"hello": "Hallo"}}]'
        self.assertEqual(extract_content(api_body(content)), '{"de": {"hello": "Hallo"}}')

    def test_brace_in_value_truncates_the_answer(self):
        """A '}' inside a quoted value ends the scanned object early."""
        content = '{"de": {"hint": "Tippe auf } um zu schließen"}}'
        with self.assertLogs("response_normalizer", level="ERROR") as cm:
            with self.assertRaises(ResponseShapeError):
                extract_content(api_body(content))
        self.assertIn('{"de": {"hint": "Tippe auf } um zu schließen"}', "\n".join(cm.output))

    def test_unparsable_body(self):
        with self.assertLogs("response_normalizer", level="ERROR") as cm:
            with self.assertRaises(ResponseShapeError):
                extract_content("<html>Bad gateway</html>")
        self.assertIn("<html>Bad gateway</html>", "\n".join(cm.output))

    def test_missing_content(self):
        body = json.dumps({"error": {"message": "quota exceeded"}})
        with self.assertLogs("response_normalizer", level="ERROR"):
            with self.assertRaises(ResponseShapeError) as ctx:
                extract_content(body)
        self.assertEqual(ctx.exception.step, ResponseStep.CHOICES)

    def test_non_object_answers_are_rejected(self):
        for content in ["[1, 2, 3]", '"just text"', "42", "I cannot help with that."]:
            with self.subTest(content=content):
                with self.assertLogs("response_normalizer", level="ERROR") as cm:
                    with self.assertRaises(ResponseShapeError):
                        extract_content(api_body(content))
                self.assertIn("not valid JSON object", "\n".join(cm.output))


class TestParseTranslationResult(unittest.TestCase):
    """Tests for decoding the validated JSON into the translation shape."""

    def test_valid_result(self):
        self.assertEqual(
            parse_translation_result('{"de": {"a": "A"}, "tr": {}}'),
            {"de": {"a": "A"}, "tr": {}},
        )

    def test_invalid_shapes(self):
        for text in [
            "[]",
            '{"de": "Hallo"}',
            '{"de": ["Hallo"]}',
            '{"de": {"a": 1}}',
            '{"de": {"a": null}}',
            '{"de": {"a": {"nested": "x"}}}',
            "not json",
        ]:
            with self.subTest(text=text):
                with self.assertRaises(ResponseShapeError):
                    parse_translation_result(text)


if __name__ == "__main__":
    unittest.main()
