"""Tests for CLI interface."""

import json
import struct

from click.testing import CliRunner

from memlayout.cli import cli

LAYOUT = """
native Vector { x: Fp32, y: Fp32 };
native Player {
    ^ 16,
    health: Int32,
    name: Text(8),
    position: Vector
};
"""


def write_files(tmp_path):
    script = tmp_path / "layout.ml"
    script.write_text(LAYOUT)

    dump = tmp_path / "dump.bin"
    dump.write_bytes(
        bytes(16) + struct.pack("<i", 420) + b"hero\x00\x00\x00\x00" + struct.pack("<ff", 1.5, -2)
    )
    return script, dump


def describe_info_command():
    def prints_layout_tables(expect, tmp_path):
        script, _ = write_files(tmp_path)
        result = CliRunner().invoke(cli, ["info", "-i", str(script)])

        expect(result.exit_code) == 0
        expect("Player" in result.output) == True
        expect("36 bytes" in result.output) == True
        expect("health" in result.output) == True

    def prints_json(expect, tmp_path):
        script, _ = write_files(tmp_path)
        result = CliRunner().invoke(cli, ["info", "-i", str(script), "--json"])

        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(list(data)) == ["Vector", "Player"]
        expect(data["Player"]["size"]) == 36
        expect(data["Player"]["padding"]) == 16
        expect(data["Player"]["fields"][2]["offset"]) == 28
        expect(data["Player"]["fields"][2]["end"]) == 36

    def fails_on_parse_errors(expect, tmp_path):
        script = tmp_path / "bad.ml"
        script.write_text("native Broken { a }")
        result = CliRunner().invoke(cli, ["info", "-i", str(script)])

        expect(result.exit_code) == 1
        expect("Error" in result.output) == True


def describe_read_command():
    def reads_structs_as_json(expect, tmp_path):
        script, dump = write_files(tmp_path)
        args = ["read", "-i", str(script), "-d", str(dump), "-t", "Player", "-a", "0x1000"]
        result = CliRunner().invoke(cli, [*args, "--base", "0x1000"])

        expect(result.exit_code) == 0
        expect(json.loads(result.output)) == {
            "health": 420,
            "name": "hero",
            "position": {"x": 1.5, "y": -2.0},
        }

    def reads_type_expressions(expect, tmp_path):
        script, dump = write_files(tmp_path)
        args = ["read", "-i", str(script), "-d", str(dump), "-t", "Pointer32(Player)", "-a", "16"]
        result = CliRunner().invoke(cli, args)

        expect(result.exit_code) == 0
        expect(json.loads(result.output)["address"]) == "0x1a4"

    def rejects_non_types(expect, tmp_path):
        script, dump = write_files(tmp_path)
        args = ["read", "-i", str(script), "-d", str(dump), "-t", "1 + 1", "-a", "0"]
        result = CliRunner().invoke(cli, args)

        expect(result.exit_code) == 2
        expect("not a type" in result.output) == True

    def fails_outside_dump(expect, tmp_path):
        script, dump = write_files(tmp_path)
        args = ["read", "-i", str(script), "-d", str(dump), "-t", "Player", "-a", "0x100"]
        result = CliRunner().invoke(cli, args)

        expect(result.exit_code) == 1
        expect("0x110" in result.output) == True


def describe_run_command():
    def prints_the_result(expect, tmp_path):
        _, dump = write_files(tmp_path)
        script = tmp_path / "run.ml"
        script.write_text("MEMORY.read(Int32, addr(16)) + 1")
        result = CliRunner().invoke(cli, ["run", str(script), "-d", str(dump)])

        expect(result.exit_code) == 0
        expect(result.output.strip()) == "421"

    def saves_modified_dump(expect, tmp_path):
        _, dump = write_files(tmp_path)
        script = tmp_path / "run.ml"
        script.write_text("MEMORY.write(Int32, addr(16), 7)")
        out = tmp_path / "out.bin"
        result = CliRunner().invoke(cli, ["run", str(script), "-d", str(dump), "-o", str(out)])

        expect(result.exit_code) == 0
        expect(out.read_bytes()[16:20]) == struct.pack("<i", 7)
        expect(dump.read_bytes()[16:20]) == struct.pack("<i", 420)

    def dump_is_readonly_without_output(expect, tmp_path):
        _, dump = write_files(tmp_path)
        script = tmp_path / "run.ml"
        script.write_text("MEMORY.write(Int32, addr(16), 7)")
        result = CliRunner().invoke(cli, ["run", str(script), "-d", str(dump)])

        expect(result.exit_code) == 1
        expect("read-only" in result.output) == True

    def output_requires_dump(expect, tmp_path):
        script = tmp_path / "run.ml"
        script.write_text("1")
        result = CliRunner().invoke(cli, ["run", str(script), "-o", str(tmp_path / "x.bin")])

        expect(result.exit_code) == 2


def describe_config_option():
    def applies_overlap_policy(expect, tmp_path):
        config = tmp_path / "options.json"
        config.write_text(json.dumps({"overlap_policy": "reject"}))
        script = tmp_path / "overlap.ml"
        script.write_text("native T { a: Text(0), b: Int32 };")

        result = CliRunner().invoke(cli, ["--config", str(config), "info", "-i", str(script)])

        expect(result.exit_code) == 1
        expect("overlaps" in result.output) == True

    def rejects_invalid_options(expect, tmp_path):
        config = tmp_path / "options.json"
        config.write_text(json.dumps({"byteorder": "middle"}))
        script = tmp_path / "empty.ml"
        script.write_text("")

        result = CliRunner().invoke(cli, ["--config", str(config), "info", "-i", str(script)])

        expect(result.exit_code) == 2
