#!/usr/bin/env python3
"""
Tests for the batch orchestrator.

The translation sender is replaced by a stub returning canned chat
completion bodies, so no network access is needed.
"""

import json
import math
import os
import sys
import unittest
from unittest.mock import MagicMock

# Add parent directory to path for module import
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from batch_translator import build_batch_request, partition_batches, translate
from translator_errors import BatchTranslationError, ResponseShapeError, TransportError


def api_body(content):
    return json.dumps({"choices": [{"message": {"role": "assistant", "content": content}}]})


def echo_sender(suffix):
    """Return a sender that 'translates' by appending a suffix to every value."""

    def send(request_json):
        request = json.loads(request_json)
        answer = {
            locale: {key: f"{value}{suffix}" for key, value in batch.items()}
            for locale, batch in request.items()
        }
        return api_body(json.dumps(answer, ensure_ascii=False))

    return send


class TestPartitionBatches(unittest.TestCase):
    """Tests for splitting a key map into batches."""

    def test_partition_sizes(self):
        for size, batch_size in [(0, 3), (1, 3), (3, 3), (7, 3), (10, 1), (5, 50)]:
            with self.subTest(size=size, batch_size=batch_size):
                key_map = {f"key_{i}": f"Value {i}" for i in range(size)}
                batches = partition_batches(key_map, batch_size)

                self.assertEqual(len(batches), math.ceil(size / batch_size))
                self.assertTrue(all(len(batch) <= batch_size for batch in batches))

                all_keys = [key for batch in batches for key in batch]
                self.assertEqual(len(all_keys), len(set(all_keys)))
                self.assertEqual(set(all_keys), set(key_map))

    def test_partition_preserves_order(self):
        key_map = {"c": "C", "a": "A", "b": "B"}
        self.assertEqual(
            partition_batches(key_map, 2),
            [{"c": "C", "a": "A"}, {"b": "B"}],
        )
        self.assertEqual(list(partition_batches(key_map, 2)[0]), ["c", "a"])

    def test_invalid_batch_size(self):
        with self.assertRaises(ValueError):
            partition_batches({"a": "A"}, 0)


class TestTranslate(unittest.TestCase):
    """Tests for the translate orchestration."""

    def test_build_batch_request_keeps_unicode(self):
        self.assertEqual(
            build_batch_request("de", {"bye": "Tschüss"}),
            '{"de": {"bye": "Tschüss"}}',
        )

    def test_translate_merges_all_batches(self):
        payload = {
            "tr": {"a": "A", "b": "B", "c": "C"},
            "de": {"a": "A"},
        }
        sender = MagicMock(side_effect=echo_sender("!"))

        result = translate(payload, 2, sender)

        self.assertEqual(
            result,
            {"de": {"a": "A!"}, "tr": {"a": "A!", "b": "B!", "c": "C!"}},
        )
        # Locales in sorted order, one request per batch
        requests = [json.loads(call.args[0]) for call in sender.call_args_list]
        self.assertEqual(
            requests,
            [
                {"de": {"a": "A"}},
                {"tr": {"a": "A", "b": "B"}},
                {"tr": {"c": "C"}},
            ],
        )

    def test_translate_empty_payload(self):
        sender = MagicMock()
        self.assertEqual(translate({}, 10, sender), {})
        sender.assert_not_called()

    def test_translate_accepts_fenced_answers(self):
        def sender(request_json):
            return api_body('Here:\n```json\n{"de": {"bye": "Tschüss"}}\n```')

        self.assertEqual(translate({"de": {"bye": "Bye"}}, 50, sender), {"de": {"bye": "Tschüss"}})

    def test_sender_failure_is_fatal(self):
        calls = []

        def sender(request_json):
            calls.append(request_json)
            if len(calls) == 2:
                raise TransportError("Empty response from API")
            return echo_sender("")(request_json)

        payload = {"de": {"a": "A", "b": "B", "c": "C"}}
        with self.assertLogs("batch_translator", level="ERROR"):
            with self.assertRaises(BatchTranslationError) as ctx:
                translate(payload, 1, sender)

        self.assertEqual(ctx.exception.locale, "de")
        self.assertEqual(ctx.exception.batch_index, 2)
        self.assertIsInstance(ctx.exception.cause, TransportError)
        self.assertIn("'de' batch 2", str(ctx.exception))
        self.assertEqual(len(calls), 2)

    def test_invalid_response_is_fatal(self):
        def sender(request_json):
            return api_body("I am unable to translate this.")

        with self.assertLogs("batch_translator", level="ERROR"):
            with self.assertRaises(BatchTranslationError) as ctx:
                translate({"fr": {"a": "A"}}, 10, sender)

        self.assertEqual(ctx.exception.locale, "fr")
        self.assertEqual(ctx.exception.batch_index, 1)
        self.assertIsInstance(ctx.exception.cause, ResponseShapeError)

    def test_wrong_value_types_are_fatal(self):
        def sender(request_json):
            return api_body('{"fr": {"a": 1}}')

        with self.assertLogs("batch_translator", level="ERROR"):
            with self.assertRaises(BatchTranslationError):
                translate({"fr": {"a": "A"}}, 10, sender)


if __name__ == "__main__":
    unittest.main()
