import json

import pytest

from execute import build_arg_parser, load_env, main


def run_json(capsys, *argv):
    code = main(["--json", "-", *argv])
    captured = capsys.readouterr()
    return code, json.loads(captured.out), captured.err


class TestArguments:
    def test_defaults(self):
        args = build_arg_parser().parse_args(["x"])
        assert (args.width, args.height, args.scale) == (800, 600, 50.0)
        assert args.center is None and args.step is None
        assert not args.decimate and not args.stitch

    def test_load_env(self, tmp_path):
        params = tmp_path / "params.txt"
        params.write_text("a = 1\nnot a param\nb=2\n", encoding="utf-8")
        args = build_arg_parser().parse_args(["x", "--params-file", str(params), "-p", "b=3"])
        assert load_env(args) == {"a": 1.0, "b": 3.0}


class TestMain:
    def test_explicit_curve_json(self, capsys):
        code, payload, err = run_json(capsys, "sin(x)")
        assert code == 0
        assert payload["viewport"] == {"center": [400.0, 300.0], "scale": 50.0, "width": 800, "height": 600}
        graph, = payload["graphs"]
        assert graph["expression"] == "sin(x)"
        seg, = graph["segments"]
        assert seg["color"] == "cyan"
        assert len(seg["points"]) > 100
        assert "✓ sin(x)" in err

    def test_implicit_equation(self, capsys):
        code, payload, _ = run_json(capsys, "--stitch", "x^2 + y^2 = r^2", "-p", "r=2")
        assert code == 0
        segments = payload["graphs"][0]["segments"]
        assert len(segments) == 1
        assert segments[0]["points"][0] == segments[0]["points"][-1]

    def test_colors_cycle_per_expression(self, capsys):
        _, payload, _ = run_json(capsys, "x", "2x")
        colors = [g["segments"][0]["color"] for g in payload["graphs"]]
        assert colors == ["cyan", "magenta"]

    def test_bad_expression_reported_and_skipped(self, capsys):
        code, payload, err = run_json(capsys, "sin(x", "x")
        assert code == 0
        assert [g["expression"] for g in payload["graphs"]] == ["x"]
        assert "✗ sin(x: Mismatched parentheses: unclosed '('" in err

    def test_all_expressions_failing(self, capsys):
        assert main(["(", "1 +"]) == 1
        out = capsys.readouterr().out
        assert out.count("✗") == 2

    def test_no_geometry_is_not_a_failure(self, capsys):
        assert main(["sqrt(-1 - x^2)"]) == 0
        assert "no plottable geometry" in capsys.readouterr().out

    def test_rpn_flag(self, capsys):
        main(["--rpn", "2x+1"])
        assert "rpn: 2 x * 1 +" in capsys.readouterr().out

    def test_json_file(self, tmp_path, capsys):
        target = tmp_path / "graphs.json"
        assert main(["x^2", "--json", str(target), "--scale", "1e9"]) == 0
        payload = json.loads(target.read_text(encoding="utf-8"))
        assert payload["viewport"]["scale"] == 4000.0
        assert "x^2: 1 segment(s)" in capsys.readouterr().out

    @pytest.mark.parametrize("flag", [["--width", "0"], ["--scale", "nan"], ["--scale", "inf"]])
    def test_bad_viewport(self, capsys, flag):
        assert main(["x", *flag]) == 1
        assert "ERROR" in capsys.readouterr().err

    @pytest.mark.parametrize("step", ["0", "-1", "nan", "abc"])
    def test_bad_step_rejected_by_argument_parser(self, capsys, step):
        with pytest.raises(SystemExit) as exc:
            main(["x", "--step", step])
        assert exc.value.code == 2
        assert "--step" in capsys.readouterr().err

    def test_explicit_step(self, capsys):
        _, payload, _ = run_json(capsys, "x", "--step", "0.5")
        seg, = payload["graphs"][0]["segments"]
        assert len(seg["points"]) == 33

    def test_plot(self, tmp_path, capsys):
        pytest.importorskip("matplotlib")
        target = tmp_path / "plot.png"
        assert main(["sin(x)", "x^2 + y^2 = 4", "--plot", str(target)]) == 0
        assert target.stat().st_size > 0
        assert "plot written" in capsys.readouterr().out
