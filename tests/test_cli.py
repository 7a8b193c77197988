import pytest

from kidneyx.cli import FORMULATIONS, main, run


def _instance_text(pairs):
    lines = ["{", '"data": {']
    for label, recipients in pairs.items():
        lines.append(f'"{label}": {{')
        lines += [f'"sources": [{label}],', '"dage": 50,', '"altruistic": false,', '"extra": 0,']
        if recipients:
            lines.append('"matches": [')
            for recipient in recipients:
                lines += ["{", f'"recipient": {recipient},', '"score": 1', "},"]
            lines.append("]")
            lines.append("},")
        else:
            lines.append("},")
    lines += ["}", "}"]
    return "\n".join(lines) + "\n"


@pytest.fixture
def instance_dir(tmp_path):
    text = _instance_text({1: [2], 2: [1, 3], 3: [4], 4: []})
    (tmp_path / "inst.json").write_text(text)
    return tmp_path


def test_run_appends_result_line(instance_dir, capsys):
    output = instance_dir / "results.txt"
    info = run("cycle", f"{instance_dir}/", "inst.json", output, 3, 0)
    lines = output.read_text().splitlines()
    assert len(lines) == 1
    fields = lines[0].split("\t")
    assert fields[0] == "inst.json"
    assert fields[1] == str(int(info.opt))
    assert int(fields[-5]) == info.lb
    assert int(fields[-4]) == info.ub
    out = capsys.readouterr().out
    assert out.startswith("Instance inst.json")
    assert "K is 3 and B is 0" in out


def test_run_appends_rather_than_overwrites(instance_dir):
    output = instance_dir / "results.txt"
    run("cycle", f"{instance_dir}/", "inst.json", output, 2, 0)
    run("eef", f"{instance_dir}/", "inst.json", output, 2, 0)
    assert len(output.read_text().splitlines()) == 2


def test_formulations_agree_on_value(instance_dir):
    output = instance_dir / "results.txt"
    base = f"{instance_dir}/"
    values = {
        name: run(name, base, "inst.json", output, 3, 1).lb
        for name in ("cycle-chains", "cycle-chains-lp", "eef-chains", "pief-chains")
    }
    assert len(set(values.values())) == 1


def test_budget_formulations_agree(instance_dir):
    output = instance_dir / "results.txt"
    base = f"{instance_dir}/"
    values = {run(name, base, "inst.json", output, 3, 1).lb for name in ("cycle", "eef", "pief")}
    assert len(values) == 1


def test_unknown_formulation_raises(instance_dir):
    with pytest.raises(ValueError):
        run("nope", f"{instance_dir}/", "inst.json", instance_dir / "out.txt", 3, 0)


def test_main_success(instance_dir):
    output = instance_dir / "results.txt"
    code = main([f"{instance_dir}/", "inst.json", str(output), "3", "0"])
    assert code == 0
    assert output.read_text().startswith("inst.json\t")


def test_main_selects_formulation(instance_dir, capsys):
    output = instance_dir / "results.txt"
    code = main(
        [f"{instance_dir}/", "inst.json", str(output), "3", "1", "--formulation", "cycle-chains"]
    )
    assert code == 0
    assert "-----" in capsys.readouterr().out


def test_main_missing_file(tmp_path, capsys):
    code = main([f"{tmp_path}/", "absent.json", str(tmp_path / "out.txt"), "3", "0"])
    assert code == 1
    assert "Could not open the file" in capsys.readouterr().err
    assert not (tmp_path / "out.txt").exists()


def test_main_rejects_unknown_formulation(instance_dir):
    with pytest.raises(SystemExit):
        main([f"{instance_dir}/", "inst.json", "out.txt", "3", "0", "--formulation", "bogus"])


def test_every_registered_formulation_runs(instance_dir):
    output = instance_dir / "results.txt"
    base = f"{instance_dir}/"
    names = sorted(FORMULATIONS)
    assert "cycle-chains-lp" in names
    assert {name.split("-")[0] for name in names} == {"cycle", "eef", "pief"}
    for name in names:
        info = run(name, base, "inst.json", output, 3, 1)
        assert 2 <= info.lb <= info.ub
    lines = output.read_text().splitlines()
    assert len(lines) == len(names)
    assert all(line.split("\t")[0] == "inst.json" for line in lines)