"""Tests for access-log parameter extraction."""

from __future__ import annotations

from captive_profiles.extraction.log_extractor import AccessLogExtractor, build_url
from tests.conftest import SAMPLE_LINES


def _log(*keys: str) -> str:
    return "\n".join(SAMPLE_LINES[k] for k in keys)


class TestParseLine:
    """Line grammar."""

    def setup_method(self):
        self.extractor = AccessLogExtractor()

    def test_fields(self):
        line = self.extractor.parse_line(SAMPLE_LINES["start"], 3)
        assert line is not None
        assert line.line_number == 3
        assert line.client_ip == "203.0.113.5"
        assert line.scheme == "https"
        assert line.host == "portal.example.com"
        assert line.port == "443"
        assert line.method == "GET"
        assert line.path == "/start"
        assert line.query == "client_mac=AA:BB:CC:DD:EE:FF"
        assert line.status == 200

    def test_no_port(self):
        line = self.extractor.parse_line(SAMPLE_LINES["login"])
        assert line.port is None
        assert build_url(line) == "https://portal.example.com/login?client_mac=11:22:33:44:55:66&nas_id=ap-7"

    def test_non_matching_lines(self):
        assert self.extractor.parse_line(SAMPLE_LINES["garbage"]) is None
        assert self.extractor.parse_line(SAMPLE_LINES["blank"]) is None

    def test_default_ports_suppressed(self):
        assert build_url(self.extractor.parse_line(SAMPLE_LINES["redirect"])) == (
            "http://portal.example.com/redirect?client_ip=10.1.1.20&ssid=Guest"
        )

    def test_non_default_port_kept_literally(self):
        line = self.extractor.parse_line(SAMPLE_LINES["odd_port"])
        assert build_url(line) == "http://portal.example.com:080/start?x=1"

    def test_empty_query_has_no_question_mark(self):
        line = self.extractor.parse_line(SAMPLE_LINES["empty_query"])
        assert build_url(line) == "https://portal.example.com:8443/start"


class TestExtract:
    """Left-to-right extraction rules."""

    def setup_method(self):
        self.extractor = AccessLogExtractor()

    def test_single_start_line(self):
        result = self.extractor.extract(SAMPLE_LINES["start"])
        assert result.query_string_parameters == {"client_mac": "AA:BB:CC:DD:EE:FF"}
        assert result.redirection_url == "https://portal.example.com/start?client_mac=AA:BB:CC:DD:EE:FF"
        assert result.match_count == 1

    def test_duplicated_input_is_idempotent_for_parameters(self):
        once = self.extractor.extract(_log("start", "redirect", "login"))
        twice = self.extractor.extract(_log("start", "redirect", "login", "start", "redirect", "login"))
        assert twice.query_string_parameters == once.query_string_parameters
        assert twice.match_count == 2 * once.match_count

    def test_first_seen_value_wins(self):
        result = self.extractor.extract(_log("start", "login"))
        assert result.query_string_parameters["client_mac"] == "AA:BB:CC:DD:EE:FF"
        assert result.query_string_parameters["nas_id"] == "ap-7"

    def test_last_redirect_wins(self):
        result = self.extractor.extract(_log("start", "redirect"))
        assert result.redirection_url == "http://portal.example.com/redirect?client_ip=10.1.1.20&ssid=Guest"

        result = self.extractor.extract(_log("redirect", "start"))
        assert result.redirection_url == "https://portal.example.com/start?client_mac=AA:BB:CC:DD:EE:FF"

    def test_non_redirect_line_leaves_url_unset(self):
        result = self.extractor.extract(SAMPLE_LINES["login"])
        assert result.redirection_url is None
        assert result.match_count == 1

    def test_unparsable_lines_skipped(self):
        result = self.extractor.extract(_log("garbage", "blank", "start", "garbage"))
        assert result.match_count == 1

    def test_empty_input_is_zero_result(self):
        result = self.extractor.extract("")
        assert result.match_count == 0
        assert result.redirection_url is None
        assert result.query_string_parameters == {}

    def test_source_ip_filter(self):
        result = self.extractor.extract(_log("start", "login"), source_ip_filter="198.51.100.7")
        assert result.match_count == 1
        assert set(result.query_string_parameters) == {"client_mac", "nas_id"}
        assert result.redirection_url is None

    def test_path_filter(self):
        result = self.extractor.extract(_log("start", "redirect", "login"), path_filter="/redirect")
        assert result.match_count == 1
        assert result.query_string_parameters == {"client_ip": "10.1.1.20", "ssid": "Guest"}

    def test_blank_query_values_kept(self):
        line = SAMPLE_LINES["start"].replace("client_mac=AA:BB:CC:DD:EE:FF", "ssid=&client_mac=X")
        result = self.extractor.extract(line)
        assert result.query_string_parameters == {"ssid": "", "client_mac": "X"}

    def test_percent_encoded_values_are_decoded(self):
        line = SAMPLE_LINES["start"].replace(
            "client_mac=AA:BB:CC:DD:EE:FF", "redirect=http%3A%2F%2Fx%2F&client_mac=AA%3ABB"
        )
        result = self.extractor.extract(line)
        assert result.query_string_parameters == {"redirect": "http://x/", "client_mac": "AA:BB"}
        # The rebuilt URL keeps the query as logged
        assert result.redirection_url.endswith("?redirect=http%3A%2F%2Fx%2F&client_mac=AA%3ABB")

    def test_empty_query_yields_no_parameters(self):
        result = self.extractor.extract(SAMPLE_LINES["empty_query"])
        assert result.match_count == 1
        assert result.query_string_parameters == {}
        assert result.redirection_url == "https://portal.example.com:8443/start"

    def test_custom_markers_case_insensitive(self):
        extractor = AccessLogExtractor(["LOGIN"])
        assert extractor.extract(SAMPLE_LINES["login"]).redirection_url is not None
        assert extractor.extract(SAMPLE_LINES["start"]).redirection_url is None


class TestExtractMany:
    def test_results_keep_input_order(self):
        extractor = AccessLogExtractor()
        texts = [SAMPLE_LINES["start"], SAMPLE_LINES["login"], _log("start", "redirect")]
        results = extractor.extract_many(texts, max_workers=3)

        assert [r.match_count for r in results] == [1, 1, 2]
        assert results == [extractor.extract(t) for t in texts]

    def test_empty_batch(self):
        assert AccessLogExtractor().extract_many([]) == []

    def test_extract_file(self, tmp_path):
        log = tmp_path / "access.log"
        log.write_text(_log("start", "login") + "\n", encoding="utf-8")
        result = AccessLogExtractor().extract_file(str(log))
        assert result.match_count == 2
