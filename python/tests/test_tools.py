"""Tests for the built-in tool providers."""

import math
import threading
from datetime import datetime

import pytest

from mcp_toolbox.core.errors import DomainError, TOOL_EXECUTION_ERROR
from mcp_toolbox.tools import Calculator, Clock, FileWorkspace, KeyValueStore


# ===== Calculator =====


class TestCalculator:
    calc = Calculator()

    def test_arithmetic(self):
        assert self.calc.add({"a": 2.0, "b": 3.0}) == 5.0
        assert self.calc.subtract({"a": 2.0, "b": 3.0}) == -1.0
        assert self.calc.multiply({"a": 2.0, "b": 3.0}) == 6.0
        assert self.calc.divide({"a": 10.0, "b": 4.0}) == 2.5

    def test_divide_by_zero(self):
        with pytest.raises(DomainError, match="Cannot divide by zero"):
            self.calc.divide({"a": 1.0, "b": 0.0})

    def test_sqrt(self):
        assert self.calc.sqrt({"number": 16.0}) == 4.0
        assert self.calc.sqrt({"number": 0.0}) == 0.0

    def test_sqrt_negative(self):
        with pytest.raises(DomainError, match="square root of negative number"):
            self.calc.sqrt({"number": -1.0})

    def test_power(self):
        assert self.calc.power({"base": 2.0, "exponent": 10.0}) == 1024.0
        assert self.calc.power({"base": 4.0, "exponent": 0.5}) == 2.0

    def test_power_overflow_is_infinite(self):
        assert self.calc.power({"base": 10.0, "exponent": 400.0}) == math.inf
        assert self.calc.power({"base": -10.0, "exponent": 401.0}) == -math.inf

    def test_power_domain_yields_nan(self):
        assert math.isnan(self.calc.power({"base": -8.0, "exponent": 1 / 3}))

    def test_power_zero_negative_exponent(self):
        assert self.calc.power({"base": 0.0, "exponent": -1.0}) == math.inf

    def test_via_executor_formats_float(self, executor):
        assert executor.execute("divide", {"a": 10, "b": 2}).text == "5.0"
        assert executor.execute("power", {"base": 10, "exponent": 400}).text == "inf"

    def test_divide_by_zero_via_executor(self, executor):
        result = executor.execute("divide", {"a": 10, "b": 0})
        assert result.error.code == TOOL_EXECUTION_ERROR
        assert result.error.message == "Cannot divide by zero"


# ===== Files =====


class TestFileWorkspace:
    @pytest.fixture
    def files(self, workspace):
        return FileWorkspace(workspace)

    def test_write_then_read(self, files):
        message = files.write_file({"filename": "notes.txt", "content": "hello"})
        assert message == "Successfully wrote 5 characters to 'notes.txt'"
        assert files.read_file({"filename": "notes.txt"}) == "Content of 'notes.txt':\nhello"

    def test_write_overwrites(self, files, workspace):
        files.write_file({"filename": "a.txt", "content": "one"})
        files.write_file({"filename": "a.txt", "content": "two"})
        assert (workspace / "a.txt").read_text() == "two"

    def test_append(self, files, workspace):
        files.write_file({"filename": "log.txt", "content": "a"})
        files.append_to_file({"filename": "log.txt", "content": "b"})
        assert (workspace / "log.txt").read_text() == "ab"

    def test_append_missing_file(self, files):
        with pytest.raises(DomainError, match="does not exist"):
            files.append_to_file({"filename": "nope.txt", "content": "x"})

    def test_read_missing_file(self, files):
        with pytest.raises(DomainError, match="File 'missing.txt' does not exist"):
            files.read_file({"filename": "missing.txt"})

    def test_list_files(self, files):
        assert files.list_files({}) == "No files in workspace"
        files.write_file({"filename": "b.txt", "content": ""})
        files.write_file({"filename": "a.txt", "content": ""})
        assert files.list_files({}) == "Files in workspace:\na.txt\nb.txt"

    def test_delete(self, files, workspace):
        files.write_file({"filename": "gone.txt", "content": "x"})
        assert files.delete_file({"filename": "gone.txt"}) == "Successfully deleted 'gone.txt'"
        assert not (workspace / "gone.txt").exists()
        with pytest.raises(DomainError):
            files.delete_file({"filename": "gone.txt"})

    def test_file_info(self, files):
        files.write_file({"filename": "info.txt", "content": "12345"})
        info = files.get_file_info({"filename": "info.txt"})
        assert info.startswith("File: info.txt\nSize: 5 bytes\nLast Modified: ")

    def test_workspace_path(self, files, workspace):
        assert files.get_workspace_path({}) == f"Workspace directory: {workspace.resolve()}"

    @pytest.mark.parametrize("filename", ["../escape.txt", "/etc/passwd", "a/../../b.txt"])
    def test_rejects_paths_outside_workspace(self, files, filename):
        with pytest.raises(DomainError, match="outside the workspace"):
            files.write_file({"filename": filename, "content": "x"})

    def test_rejects_empty_filename(self, files):
        with pytest.raises(DomainError, match="cannot be empty"):
            files.read_file({"filename": "  "})

    def test_creates_workspace(self, tmp_path):
        target = tmp_path / "new" / "dir"
        FileWorkspace(target)
        assert target.is_dir()


# ===== Key-Value Store =====


class TestKeyValueStore:
    @pytest.fixture
    def kv(self):
        return KeyValueStore()

    def test_store_and_retrieve(self, kv):
        assert kv.store({"key": "k", "value": "v"}) == "Stored value under key 'k'"
        assert kv.retrieve({"key": "k"}) == "v"

    def test_overwrite(self, kv):
        kv.store({"key": "k", "value": "1"})
        kv.store({"key": "k", "value": "2"})
        assert kv.retrieve({"key": "k"}) == "2"
        assert len(kv) == 1

    def test_retrieve_missing(self, kv):
        assert kv.retrieve({"key": "nope"}) == "No value found for key 'nope'"

    def test_empty_key_rejected(self, kv):
        with pytest.raises(DomainError, match="Key cannot be empty"):
            kv.store({"key": " ", "value": "v"})

    def test_null_value_rejected(self, kv):
        with pytest.raises(DomainError, match="Value cannot be null"):
            kv.store({"key": "k"})

    def test_delete(self, kv):
        kv.store({"key": "k", "value": "v"})
        assert kv.delete({"key": "k"}) == "Deleted value for key 'k'"
        assert kv.delete({"key": "k"}) == "No value found for key 'k'"

    def test_list_keys(self, kv):
        assert kv.list_keys({}) == "No keys stored"
        kv.store({"key": "x", "value": "1"})
        kv.store({"key": "y", "value": "2"})
        assert kv.list_keys({}) == "Stored keys: x, y"

    def test_clear_is_idempotent(self, kv):
        kv.store({"key": "x", "value": "1"})
        assert kv.clear({}) == "Cleared 1 entries from storage"
        assert kv.clear({}) == "Cleared 0 entries from storage"
        assert kv.count({}) == "Storage contains 0 entries"

    def test_concurrent_stores_to_distinct_keys(self, kv):
        def writer(i):
            for j in range(50):
                kv.store({"key": f"k{i}-{j}", "value": str(j)})

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(kv) == 400
        assert kv.get("k3-49") == "49"

    def test_concurrent_stores_same_key_last_write_wins(self, kv):
        values = [str(i) for i in range(16)]
        barrier = threading.Barrier(len(values))

        def writer(value):
            barrier.wait()
            kv.store({"key": "shared", "value": value})

        threads = [threading.Thread(target=writer, args=(v,)) for v in values]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(kv) == 1
        assert kv.get("shared") in values

    def test_concurrent_reads_never_see_partial_values(self, kv):
        written = {"x" * 1000, "y" * 1000}
        kv.store({"key": "shared", "value": "x" * 1000})
        barrier = threading.Barrier(8)
        reads = []
        reads_lock = threading.Lock()

        def writer(value):
            barrier.wait()
            for _ in range(200):
                kv.store({"key": "shared", "value": value})

        def reader():
            barrier.wait()
            seen = [kv.retrieve({"key": "shared"}) for _ in range(200)]
            with reads_lock:
                reads.extend(seen)

        threads = [threading.Thread(target=writer, args=(v,)) for v in sorted(written) * 2]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(reads) == 800
        assert set(reads) <= written
        assert kv.get("shared") in written

    def test_string_value_from_number_via_executor(self, executor):
        executor.execute("store", {"key": "n", "value": 42})
        assert executor.execute("retrieve", {"key": "n"}).text == "42"


# ===== Clock =====


class TestClock:
    def test_fixed_time(self):
        clock = Clock(now=lambda: datetime(2024, 1, 15, 10, 30, 0))
        assert clock.get_current_time({}) == "2024-01-15T10:30:00"

    def test_default_is_iso_format(self):
        text = Clock().get_current_time({})
        assert datetime.fromisoformat(text)
