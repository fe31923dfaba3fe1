import json

import pytest

from rensa.powers.loader import (
    InvalidPowerError,
    load_power_file,
    load_power_set,
    load_powers,
    to_chain_power,
    validate_powers,
)
from rensa.powers.models import PowerRecord
from tests.conftest import make_power


def _raw(slug="flares", **overrides):
    data = {
        "id": slug,
        "name": slug.title(),
        "nominalDuration": 1.0,
        "baseRecharge": 4.0,
        "baseValue": 63.19,
    }
    data.update(overrides)
    return data


class TestToChainPower:
    def test_derives_duration_and_recharge(self):
        record = PowerRecord.model_validate(_raw(enhancedRechargePct=50))
        power = to_chain_power(record, recharge_bonus_pct=50)
        assert power.duration == pytest.approx(9 * 0.132)
        assert power.effective_recharge == pytest.approx(2.0)
        assert power.base_recharge == 4.0
        assert power.nominal_duration == 1.0

    def test_precomputed_values_win(self):
        record = PowerRecord.model_validate(
            _raw(quantizedDuration=1.5, effectiveRecharge=3.0),
        )
        power = to_chain_power(record, recharge_bonus_pct=100)
        assert power.duration == 1.5
        assert power.effective_recharge == 3.0

    def test_instant_power_takes_one_tick(self):
        record = PowerRecord.model_validate(_raw(nominalDuration=0))
        assert to_chain_power(record).duration == 0.132

    def test_self_buff_converted(self):
        record = PowerRecord.model_validate(_raw(
            selfBuff={"bonusFraction": 0.066, "bonusDuration": 8.5, "stacking": "Replace"},
        ))
        buff = to_chain_power(record).self_buff
        assert (buff.bonus, buff.duration, buff.stacking) == (0.066, 8.5, "Replace")

    def test_name_falls_back_to_slug(self):
        record = PowerRecord.model_validate(_raw(name=""))
        assert to_chain_power(record).name == "flares"


class TestLoadPowers:
    def test_invalid_record_names_the_power(self):
        with pytest.raises(InvalidPowerError) as exc_info:
            load_powers([_raw("ok"), _raw("bad", baseRecharge=-1)])
        assert exc_info.value.slug == "bad"
        assert "bad" in str(exc_info.value)

    def test_invalid_record_without_id_uses_index(self):
        with pytest.raises(InvalidPowerError, match="#1"):
            load_powers([_raw("ok"), {"baseRecharge": 1}])

    def test_duplicate_ids(self):
        with pytest.raises(InvalidPowerError, match="Duplicate"):
            load_powers([_raw("a"), _raw("a")])


class TestLoadPowerSet:
    def test_list_moves_buff_only_to_overlays(self):
        aim = _raw(
            "aim", baseValue=0, isBuffOnly=True, baseRecharge=90,
            selfBuff={"bonusFraction": 0.625, "bonusDuration": 10, "stacking": "Replace"},
        )
        power_set = load_power_set([_raw("flares"), aim])
        assert [p.slug for p in power_set.attacks] == ["flares"]
        assert [p.slug for p in power_set.overlays] == ["aim"]

    def test_object_with_overlay_section(self):
        aim = _raw(
            "aim", baseValue=0, isBuffOnly=True,
            selfBuff={"bonusFraction": 0.625, "bonusDuration": 10},
        )
        power_set = load_power_set({"powers": [_raw("flares")], "overlay": [aim]})
        assert len(power_set.attacks) == 1
        assert power_set.overlays[0].slug == "aim"

    def test_duplicate_across_sections(self):
        aim = _raw(
            "flares", baseValue=0, isBuffOnly=True,
            selfBuff={"bonusFraction": 0.5, "bonusDuration": 10},
        )
        with pytest.raises(InvalidPowerError, match="Duplicate"):
            load_power_set({"powers": [_raw("flares")], "overlay": [aim]})

    def test_rejects_other_types(self):
        with pytest.raises(InvalidPowerError, match="str"):
            load_power_set("flares")

    def test_global_recharge_applied(self):
        power_set = load_power_set([_raw()], recharge_bonus_pct=100)
        assert power_set.attacks[0].effective_recharge == pytest.approx(2.0)


class TestLoadPowerFile:
    def test_reads_json(self, tmp_path):
        path = tmp_path / "powers.json"
        path.write_text(json.dumps([_raw("flares"), _raw("blaze")]))
        power_set = load_power_file(path)
        assert [p.slug for p in power_set.attacks] == ["flares", "blaze"]

    def test_bad_json(self, tmp_path):
        path = tmp_path / "powers.json"
        path.write_text("{not json")
        with pytest.raises(InvalidPowerError, match="not valid JSON"):
            load_power_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_power_file(tmp_path / "missing.json")


class TestValidatePowers:
    def test_empty(self):
        with pytest.raises(InvalidPowerError, match="No powers"):
            validate_powers([])
        validate_powers([], allow_empty=True)

    def test_zero_duration(self):
        with pytest.raises(InvalidPowerError, match="duration") as exc_info:
            validate_powers([make_power("a", duration=0.0)])
        assert exc_info.value.slug == "a"

    def test_infinite_recharge(self):
        with pytest.raises(InvalidPowerError, match="recharge"):
            validate_powers([make_power("a", recharge=float("inf"))])

    def test_negative_value(self):
        with pytest.raises(InvalidPowerError, match="base value"):
            validate_powers([make_power("a", value=-1.0)])

    def test_bad_buff(self):
        with pytest.raises(InvalidPowerError, match="self-buff"):
            validate_powers([make_power("a", buff=(0.0, 5.0))])
        with pytest.raises(InvalidPowerError, match="stacking"):
            validate_powers([make_power("a", buff=(0.1, 5.0, "Add"))])

    def test_buff_only_with_value(self):
        with pytest.raises(InvalidPowerError, match="buff-only"):
            validate_powers([make_power("a", value=5.0, buff=(0.1, 5.0), is_buff_only=True)])

    def test_valid(self):
        validate_powers([make_power("a"), make_power("b", buff=(0.1, 5.0, "Replace"))])


class TestMalformedInput:
    def test_invalid_utf8_file(self, tmp_path):
        path = tmp_path / "powers.json"
        path.write_bytes(b'[{"id": "\xff"}]')
        with pytest.raises(InvalidPowerError, match="UTF-8"):
            load_power_file(path)

    @pytest.mark.parametrize(
        "data",
        [{"powers": None}, {"powers": [], "overlay": None}, {"powers": {"id": "a"}}],
    )
    def test_sections_must_be_lists(self, data):
        with pytest.raises(InvalidPowerError, match="must be a list"):
            load_power_set(data)

    def test_null_section_file(self, tmp_path):
        path = tmp_path / "powers.json"
        path.write_text('{"powers": null}')
        with pytest.raises(InvalidPowerError, match="'powers'"):
            load_power_file(path)
