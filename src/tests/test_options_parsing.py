"""
Tests for command line parsing in tail_common.py.

Tests cover:
- parse_count(): signs and size suffixes
- get_config(): -n / -c / -f / -F / -s, the obsolete -NUMBER form, defaults
- setup_logging(): level and log file handling
"""

import argparse
import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from ptail.tail_common import (
    DEFAULT_SELECTION,
    Selection,
    get_config,
    parse_count,
    rewrite_obsolete_count,
    setup_logging,
)


class TestParseCount:
    def test_plain_number_counts_from_end(self):
        assert parse_count("5") == (5, True)

    def test_minus_counts_from_end(self):
        assert parse_count("-5") == (5, True)

    def test_plus_counts_from_start(self):
        assert parse_count("+5") == (5, False)

    def test_suffixes(self):
        assert parse_count("2k") == (2048, True)
        assert parse_count("+1M") == (1024 ** 2, False)
        assert parse_count("1g") == (1024 ** 3, True)

    @pytest.mark.parametrize("text", ["", "abc", "5x", "--5", "1.5"])
    def test_invalid(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_count(text)


class TestRewriteObsoleteCount:
    def test_first_operand_rewritten(self):
        assert rewrite_obsolete_count(["-2m", "a", "-3"]) == ["--lines=-2m", "a", "-3"]

    def test_untouched_with_count_option(self):
        assert rewrite_obsolete_count(["-c5", "-3"]) == ["-c5", "-3"]
        assert rewrite_obsolete_count(["--bytes=5", "-3"]) == ["--bytes=5", "-3"]

    def test_only_the_first_operand(self):
        assert rewrite_obsolete_count(["a.log", "-3"]) == ["a.log", "-3"]


class TestGetConfig:
    def test_defaults(self):
        config = get_config([])
        assert config['FILES'] == ["-"]
        assert config['SELECTION'] == DEFAULT_SELECTION == Selection(10, False, True)
        assert config['FOLLOW'] is None
        assert config['SLEEP'] == 1.0
        assert config['LOG_LEVEL'] == 'WARNING'

    def test_lines(self):
        assert get_config(["-n", "3", "f"])['SELECTION'] == Selection(3, False, True)

    def test_negative_lines_value(self):
        assert get_config(["-n", "-3", "f"])['SELECTION'] == Selection(3, False, True)

    def test_bytes_from_start(self):
        assert get_config(["-c", "+7", "f"])['SELECTION'] == Selection(7, True, False)

    def test_last_of_n_and_c_wins(self):
        assert get_config(["-n", "3", "-c", "4"])['SELECTION'] == Selection(4, True, True)
        assert get_config(["-c", "4", "-n", "3"])['SELECTION'] == Selection(3, False, True)

    def test_last_of_f_and_F_wins(self):
        assert get_config(["-f", "-F"])['FOLLOW'] == "name"
        assert get_config(["-F", "-f"])['FOLLOW'] == "descriptor"

    def test_obsolete_form(self):
        config = get_config(["-42", "a.log"])
        assert config['SELECTION'] == Selection(42, False, True)
        assert config['FILES'] == ["a.log"]

    def test_obsolete_form_with_suffix(self):
        config = get_config(["-1k", "f.txt"])
        assert config['SELECTION'] == Selection(1024, False, True)
        assert config['FILES'] == ["f.txt"]

    def test_obsolete_form_after_other_options(self):
        config = get_config(["-F", "-s", "2", "-5", "f.txt"])
        assert config['SELECTION'] == Selection(5, False, True)
        assert config['SLEEP'] == 2.0
        assert config['FILES'] == ["f.txt"]

    def test_obsolete_form_ignored_with_explicit_count(self):
        config = get_config(["-n", "2", "-42"])
        assert config['SELECTION'] == Selection(2, False, True)
        assert config['FILES'] == ["-42"]

    def test_files_and_options_intermixed(self):
        config = get_config(["a.log", "-n", "1", "b.log"])
        assert config['FILES'] == ["a.log", "b.log"]

    def test_dash_is_stdin(self):
        assert get_config(["-"])['FILES'] == ["-"]

    def test_sleep_interval(self):
        assert get_config(["-F", "-s", "0.5"])['SLEEP'] == 0.5

    def test_invalid_sleep_interval(self):
        with pytest.raises(SystemExit) as exc_info:
            get_config(["-s", "soon"])
        assert exc_info.value.code == 2

    def test_invalid_count(self):
        with pytest.raises(SystemExit) as exc_info:
            get_config(["-n", "many"])
        assert exc_info.value.code == 2

    def test_debug_and_outfile(self):
        config = get_config(["--debug", "-O", "ptail.log"])
        assert config['LOG_LEVEL'] == 'DEBUG'
        assert config['OUTFILE'] == "ptail.log"


class TestSetupLogging:
    def test_log_file(self, temp_dir):
        log_file = temp_dir / "logs" / "ptail.log"
        setup_logging({'LOG_LEVEL': 'DEBUG', 'OUTFILE': str(log_file)})
        logging.debug("hello from the test")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello from the test" in log_file.read_text()
        logging.basicConfig(level=logging.WARNING, handlers=[logging.NullHandler()], force=True)

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            setup_logging({'LOG_LEVEL': 'LOUD'})
