"""Grant path template compilation and matching."""

from __future__ import annotations

import unittest

from gatekeeper.domain.path_template import (
    PathDecodeError,
    PathTemplateError,
    compile_path_template,
    decode_segment,
    match_path,
)


class PathTemplateMatchTests(unittest.TestCase):
    def test_literal_template_matches_only_identical_path(self) -> None:
        template = compile_path_template("/grants/list")

        self.assertEqual(template.match("/grants/list"), {})
        self.assertIsNone(template.match("/grants/lists"))
        self.assertIsNone(template.match("/grants"))
        self.assertIsNone(template.match("/grants/list/extra"))

    def test_named_parameter_binds_one_segment(self) -> None:
        self.assertEqual(match_path("/reports/:id", "/reports/42"), {"id": "42"})
        self.assertIsNone(match_path("/reports/:id", "/reports/42/x"))
        self.assertIsNone(match_path("/reports/:id", "/reports/"))
        self.assertIsNone(match_path("/reports/:id", "/reports"))

    def test_identifier_parameter_requires_exactly_one_segment(self) -> None:
        template = compile_path_template("/auth/:id")

        self.assertEqual(template.match("/auth/abc-123"), {"id": "abc-123"})
        self.assertEqual(
            template.match("/auth/550e8400-e29b-41d4-a716-446655440000"),
            {"id": "550e8400-e29b-41d4-a716-446655440000"},
        )
        self.assertIsNone(template.match("/auth/abc-123/profiles"))
        self.assertIsNone(template.match("/auth"))

    def test_multiple_parameters_bind_in_order(self) -> None:
        template = compile_path_template("/auth/:authId/profiles/:profileId")

        self.assertEqual(template.param_names, ("authId", "profileId"))
        self.assertEqual(template.match("/auth/a1/profiles/p9"), {"authId": "a1", "profileId": "p9"})

    def test_matching_is_case_sensitive(self) -> None:
        self.assertFalse(compile_path_template("/reports/:id").matches("/Reports/1"))

    def test_single_trailing_slash_is_tolerated(self) -> None:
        self.assertTrue(compile_path_template("/reports/:id").matches("/reports/1/"))
        self.assertFalse(compile_path_template("/reports/:id").matches("/reports/1//"))

    def test_encoded_slash_stays_inside_its_segment(self) -> None:
        self.assertEqual(match_path("/files/:name", "/files/a%2Fb"), {"name": "a/b"})
        self.assertIsNone(match_path("/files/:name", "/files/a/b"))

    def test_percent_escapes_are_decoded_before_literal_comparison(self) -> None:
        self.assertTrue(compile_path_template("/caf%C3%A9").matches("/café"))
        self.assertTrue(compile_path_template("/café").matches("/caf%C3%A9"))

    def test_malformed_escape_never_matches(self) -> None:
        self.assertIsNone(match_path("/files/:name", "/files/%zz"))
        self.assertIsNone(match_path("/files/:name", "/files/%E9"))

    def test_relative_request_path_never_matches(self) -> None:
        self.assertIsNone(match_path("/reports/:id", "reports/1"))

    def test_root_template_matches_root_only(self) -> None:
        self.assertTrue(compile_path_template("/").matches("/"))
        self.assertFalse(compile_path_template("/").matches("/x"))


class PathTemplateCompileTests(unittest.TestCase):
    def test_template_must_be_absolute(self) -> None:
        with self.assertRaises(PathTemplateError):
            compile_path_template("reports/:id")

    def test_duplicate_parameter_names_are_rejected(self) -> None:
        with self.assertRaises(PathTemplateError):
            compile_path_template("/a/:id/b/:id")

    def test_invalid_parameter_name_is_rejected(self) -> None:
        with self.assertRaises(PathTemplateError):
            compile_path_template("/a/:")
        with self.assertRaises(PathTemplateError):
            compile_path_template("/a/:1st")

    def test_empty_inner_segment_is_rejected(self) -> None:
        with self.assertRaises(PathTemplateError):
            compile_path_template("/a//b")

    def test_decode_segment_rejects_truncated_escape(self) -> None:
        with self.assertRaises(PathDecodeError):
            decode_segment("abc%2")


if __name__ == "__main__":
    unittest.main()
