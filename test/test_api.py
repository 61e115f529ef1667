import unittest
from unittest.mock import MagicMock, patch

import main
from bible_parser import EMPTY_HINT, FORMAT_HINT
from study_fixtures import FakeStatusError, sample_study_dict
from study_models import Depth, StudyDocument
from study_service import GENERIC_FAILURE_MESSAGE, StudyService


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        main.app.config["TESTING"] = True
        self.client = main.app.test_client()

        self.llm_handler = MagicMock()
        self.llm_handler.is_configured = True
        self.llm_handler.fetch_study.return_value = StudyDocument.model_validate(
            sample_study_dict()
        )
        service = StudyService(self.llm_handler, main.app.logger)

        patchers = [
            patch.object(main, "llm_handler", self.llm_handler),
            patch.object(main, "study_service", service),
            patch.object(main, "PUBLIC_BASE_URL", None),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def _post_study(self, **payload):
        return self.client.post("/api/study", json=payload)


class TestStudyEndpoint(ApiTestCase):
    def test_generates_normalized_study(self):
        response = self._post_study(passage="Mateus 3:11", translation="ARC", depth="academic")

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["study"]["meta"]["reference"], "Mateus 3:11")
        self.assertEqual(body["study"]["meta"]["translation"], "ARC")
        self.assertEqual(body["study"]["content"]["lexical_analysis"][0]["word"], "batizo")
        self.assertTrue(body["share_url"].startswith("http://localhost/?ref=Mateus+3%3A11"))
        self.assertEqual(self.llm_handler.fetch_study.call_args.args[2], Depth.ACADEMIC)

    def test_defaults_translation_and_depth(self):
        response = self._post_study(passage="Salmos 23")

        self.assertEqual(response.get_json()["study"]["meta"]["translation"], "NVI")
        self.assertEqual(self.llm_handler.fetch_study.call_args.args[2], Depth.DETAILED)

    def test_share_url_uses_public_base_url(self):
        with patch.object(main, "PUBLIC_BASE_URL", "https://exegesis.example/"):
            response = self._post_study(passage="Jo 1:1", translation="NVT", depth="quick")

        self.assertEqual(
            response.get_json()["share_url"],
            "https://exegesis.example/?ref=Jo+1%3A1&trans=NVT&depth=quick",
        )

    def test_empty_passage(self):
        response = self._post_study(passage="   ")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["message"], EMPTY_HINT)
        self.llm_handler.fetch_study.assert_not_called()

    def test_malformed_passage(self):
        response = self._post_study(passage="Mateus")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["message"], FORMAT_HINT)
        self.llm_handler.fetch_study.assert_not_called()

    def test_unknown_translation(self):
        response = self._post_study(passage="Jo 1:1", translation="XYZ")

        self.assertEqual(response.status_code, 400)
        self.assertIn("Unknown translation", response.get_json()["message"])

    def test_not_configured(self):
        self.llm_handler.is_configured = False

        response = self._post_study(passage="Jo 1:1")

        self.assertEqual(response.status_code, 503)
        self.llm_handler.fetch_study.assert_not_called()

    def test_generation_failure(self):
        self.llm_handler.fetch_study.side_effect = FakeStatusError(500)

        response = self._post_study(passage="Jo 1:1")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.get_json()["message"], GENERIC_FAILURE_MESSAGE)


class TestSharedStudyEndpoint(ApiTestCase):
    def test_reruns_shared_study(self):
        response = self.client.get(
            "/api/study/shared", query_string={"ref": "1 Jo 1:9", "trans": "kjv", "depth": "sermao"}
        )

        self.assertEqual(response.status_code, 200)
        meta = response.get_json()["study"]["meta"]
        self.assertEqual(meta["reference"], "1 Jo 1:9")
        self.assertEqual(meta["translation"], "KJV")
        self.assertEqual(self.llm_handler.fetch_study.call_args.args[2], Depth.SERMON)

    def test_missing_ref(self):
        response = self.client.get("/api/study/shared", query_string={"trans": "NVI"})

        self.assertEqual(response.status_code, 400)
        self.llm_handler.fetch_study.assert_not_called()


class TestHistoryEndpoint(ApiTestCase):
    def test_history_is_recorded_most_recent_first(self):
        self._post_study(passage="Jo 1:1")
        self._post_study(passage="Rm 8:28", translation="ARC")
        self._post_study(passage="Jo 1:1", depth="sermon")

        entries = self.client.get("/api/history").get_json()

        self.assertEqual([e["passage"] for e in entries], ["Jo 1:1", "Rm 8:28"])
        self.assertEqual(entries[0]["depth"], "sermon")
        self.assertIsInstance(entries[0]["timestamp"], int)

    def test_failed_generation_is_still_recorded(self):
        self.llm_handler.fetch_study.side_effect = FakeStatusError(503)

        self._post_study(passage="Jo 1:1")

        entries = self.client.get("/api/history").get_json()
        self.assertEqual([e["passage"] for e in entries], ["Jo 1:1"])

    def test_invalid_submissions_are_not_recorded(self):
        self._post_study(passage="Mateus")

        self.assertEqual(self.client.get("/api/history").get_json(), [])

    def test_filter(self):
        self._post_study(passage="Mateus 3:11")
        self._post_study(passage="Romanos 8:28", translation="ARC")

        entries = self.client.get("/api/history", query_string={"filter": "arc"}).get_json()

        self.assertEqual([e["passage"] for e in entries], ["Romanos 8:28"])

    def test_clear(self):
        self._post_study(passage="Jo 1:1")

        response = self.client.delete("/api/history")

        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.client.get("/api/history").get_json(), [])


class TestExportEndpoint(ApiTestCase):
    def test_markdown_export(self):
        response = self.client.post("/api/export/md", json={"study": sample_study_dict()})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.mimetype.startswith("text/markdown"))
        self.assertIn("attachment", response.headers["Content-Disposition"])
        self.assertIn("Estudo - Matthew 3-11.md", response.headers["Content-Disposition"])
        self.assertIn("# Exegetical Study: Matthew 3:11", response.get_data(as_text=True))

    def test_bare_document_is_accepted(self):
        response = self.client.post("/api/export/doc", json=sample_study_dict())

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data.startswith(b"\xef\xbb\xbf"))

    def test_pdf_export(self):
        response = self.client.post("/api/export/pdf", json={"study": sample_study_dict()})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "application/pdf")
        self.assertTrue(response.data.startswith(b"%PDF"))

    def test_slides_export(self):
        response = self.client.post("/api/export/pptx", json={"study": sample_study_dict()})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data.startswith(b"PK"))

    def test_unknown_format(self):
        response = self.client.post("/api/export/epub", json={"study": sample_study_dict()})
        self.assertEqual(response.status_code, 404)

    def test_invalid_document(self):
        response = self.client.post("/api/export/md", json={"study": {"meta": {}}})
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
