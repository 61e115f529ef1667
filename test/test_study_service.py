import unittest
from unittest.mock import MagicMock

from bible_parser import EmptyPassageError, PassageFormatError
from history import StudyHistory
from study_fixtures import FakeStatusError, sample_study_dict
from study_models import Depth, StudyDocument, StudyRequest, Translation
from study_service import GENERIC_FAILURE_MESSAGE, StudyGenerationError, StudyService


class TestStudyService(unittest.TestCase):
    def setUp(self):
        self.llm_handler = MagicMock()
        self.llm_handler.fetch_study.return_value = StudyDocument.model_validate(
            sample_study_dict()
        )
        self.logger = MagicMock()
        self.service = StudyService(self.llm_handler, self.logger)

    def test_build_request_defaults(self):
        request = self.service.build_request("  Mateus 3:11 ")

        self.assertEqual(request, StudyRequest("Mateus 3:11", Translation.NVI, Depth.DETAILED))

    def test_build_request_parses_codes(self):
        request = self.service.build_request("Jo 1:1", "esv", "rapido")

        self.assertEqual(request.translation, Translation.ESV)
        self.assertEqual(request.depth, Depth.QUICK)

    def test_build_request_rejects_bad_input(self):
        with self.assertRaises(EmptyPassageError):
            self.service.build_request("  ")
        with self.assertRaises(PassageFormatError):
            self.service.build_request("Mateus")
        with self.assertRaises(ValueError):
            self.service.build_request("Jo 1:1", "XYZ")
        with self.assertRaises(ValueError):
            self.service.build_request("Jo 1:1", "NVI", "deep")

    def test_create_study_normalizes_meta(self):
        request = StudyRequest("Mateus 3:11", Translation.ARC, Depth.ACADEMIC)

        document = self.service.create_study(request)

        instructions, schema, depth = self.llm_handler.fetch_study.call_args.args
        self.assertIn("Mateus 3:11", instructions)
        self.assertEqual(schema["type"], "object")
        self.assertEqual(depth, Depth.ACADEMIC)
        self.assertEqual(document.meta.reference, "Mateus 3:11")
        self.assertEqual(document.meta.translation, "ARC")
        self.assertNotEqual(document.meta.generated_at, "2001-01-01T00:00:00")

    def test_reference_echoes_the_passage_as_typed_minus_padding(self):
        request = self.service.build_request("  1 jo  1:9 ", "kjv")

        document = self.service.create_study(request)

        self.assertEqual(document.meta.reference, "1 jo  1:9")
        self.assertEqual(document.meta.translation, "KJV")

    def test_create_study_wraps_failures(self):
        cause = FakeStatusError(401, "Incorrect API key")
        self.llm_handler.fetch_study.side_effect = cause

        with self.assertRaises(StudyGenerationError) as ctx:
            self.service.create_study(StudyRequest("Jo 1:1"))

        self.assertEqual(ctx.exception.message, GENERIC_FAILURE_MESSAGE)
        self.assertIs(ctx.exception.__cause__, cause)
        self.logger.error.assert_called_once()

    def test_submit_records_history(self):
        request = StudyRequest("Jo 1:1")

        document, history = self.service.submit(request, StudyHistory())

        self.assertEqual(document.meta.reference, "Jo 1:1")
        self.assertEqual([e.passage for e in history], ["Jo 1:1"])

    def test_submit_records_history_even_on_failure(self):
        self.llm_handler.fetch_study.side_effect = FakeStatusError(500)
        previous = StudyHistory().add(StudyRequest("Rm 8:28"), timestamp=1)

        with self.assertRaises(StudyGenerationError) as ctx:
            self.service.submit(StudyRequest("Jo 1:1"), previous)

        self.assertEqual([e.passage for e in ctx.exception.history], ["Jo 1:1", "Rm 8:28"])
        self.assertEqual(len(previous), 1)


if __name__ == "__main__":
    unittest.main()
