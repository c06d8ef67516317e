import os

import pytest

from ASM1_Processes import describe_process_rates
from effluent_metrics import (
    QUALITY_KEYS,
    calculate_effluent_quality,
    calculate_oxygen_demand,
    calculate_performance,
    calculate_sludge_production,
    make_performance_plot,
    performance_table,
    removal_percent,
)


class TestEffluentQuality:
    @pytest.mark.unit
    def test_clarified_effluent(self, reactor_state):
        quality = calculate_effluent_quality(reactor_state)
        # particulate COD 1240, 5 % escapes the clarifier
        assert quality['COD'] == pytest.approx(30 + 5 + 62)
        assert quality['BOD5'] == pytest.approx(5 + 0.4 * 40 * 0.05)
        assert quality['VSS'] == pytest.approx(62 / 1.42)
        assert quality['TSS'] == pytest.approx(62 / 1.42 / 0.8)
        assert quality['TKN'] == pytest.approx(2 + 1 + 5 * 0.05)
        assert quality['NH4N'] == 2.0
        assert quality['NO3N'] == 10.0
        assert quality['TN'] == pytest.approx(13.25)
        assert set(quality) == set(QUALITY_KEYS)

    @pytest.mark.unit
    def test_unsettled_stream(self, typical_influent):
        quality = calculate_effluent_quality(typical_influent, clarifier_efficiency=0.0)
        assert quality['COD'] == pytest.approx(440.0)
        assert quality['BOD5'] == pytest.approx(200.0)
        assert quality['TKN'] == pytest.approx(45.0)

    @pytest.mark.unit
    def test_non_negative(self):
        state = {name: 0.0 for name in ['S_I', 'S_S', 'X_I', 'X_S', 'X_H', 'X_A', 'X_P',
                                         'S_O', 'S_NO', 'S_NH', 'S_ND', 'X_ND', 'S_ALK']}
        assert all(v == 0.0 for v in calculate_effluent_quality(state).values())


class TestOxygenDemand:
    @pytest.mark.unit
    def test_from_rates(self, stoich_params):
        rates = [10.0, 0.0, 2.0, 0.0, 0.0, 0.0, 0.0, 0.0]
        demand = calculate_oxygen_demand(rates, stoich_params, 1000.0)
        assert demand['carbonaceous'] == pytest.approx(0.33 / 0.67 * 10.0)
        assert demand['nitrogenous'] == pytest.approx((4.57 - 0.24) / 0.24 * 2.0)
        assert demand['total'] == pytest.approx(demand['carbonaceous'] + demand['nitrogenous'])
        assert demand['specific'] == pytest.approx(demand['total'] / 1000.0)

    @pytest.mark.unit
    def test_from_process_records(self, reactor_state, kinetic_params, stoich_params):
        records = describe_process_rates(reactor_state, kinetic_params)
        rates = [r['rate'] for r in records]
        assert calculate_oxygen_demand(records, stoich_params, 500.0) == \
            pytest.approx(calculate_oxygen_demand(rates, stoich_params, 500.0))

    @pytest.mark.unit
    def test_zero_volume(self, stoich_params):
        demand = calculate_oxygen_demand([1.0] * 8, stoich_params, 0.0)
        assert demand['total'] == 0.0
        assert demand['specific'] == 0.0


class TestSludgeProduction:
    @pytest.mark.unit
    def test_wastage(self, reactor_state):
        sludge = calculate_sludge_production(reactor_state, srt=10.0, volume=500.0)
        assert sludge['wastage_rate'] == pytest.approx(50.0)
        assert sludge['total_vss'] == pytest.approx(1240 / 1.42 * 50 / 1000)
        assert sludge['total_tss'] == pytest.approx(sludge['total_vss'] / 0.8)


class TestPerformance:
    @pytest.mark.unit
    def test_removal_percent(self):
        assert removal_percent(200.0, 20.0) == pytest.approx(90.0)
        assert removal_percent(0.0, 0.0) == 0.0
        # denominator floored at 1
        assert removal_percent(0.5, 0.0) == pytest.approx(50.0)
        assert removal_percent(0.0, 2.0) == pytest.approx(-200.0)

    @pytest.mark.unit
    def test_performance(self, typical_influent, reactor_state):
        influent_quality = calculate_effluent_quality(typical_influent, clarifier_efficiency=0.0)
        effluent_quality = calculate_effluent_quality(reactor_state)
        performance = calculate_performance(influent_quality, effluent_quality)

        assert set(performance) == {'bod_removal', 'cod_removal', 'tss_removal',
                                    'nh4_removal', 'tn_removal'}
        assert performance['cod_removal'] == pytest.approx((440 - 97) / 440 * 100)
        assert performance['nh4_removal'] == pytest.approx((30 - 2) / 30 * 100)

    @pytest.mark.unit
    def test_table(self, typical_influent, reactor_state):
        df = performance_table(calculate_effluent_quality(typical_influent, 0.0),
                               calculate_effluent_quality(reactor_state))
        assert list(df.columns) == ['parameter', 'influent', 'effluent', 'removal_pct']
        assert list(df['parameter']) == QUALITY_KEYS

    @pytest.mark.unit
    def test_plot_and_csv(self, tmp_path, typical_influent, reactor_state):
        out_png = os.path.join(tmp_path, 'perf.png')
        out_csv = os.path.join(tmp_path, 'perf.csv')
        df = make_performance_plot(calculate_effluent_quality(typical_influent, 0.0),
                                   calculate_effluent_quality(reactor_state),
                                   out_png=out_png, out_csv=out_csv)
        assert os.path.exists(out_png)
        assert os.path.exists(out_csv)
        assert len(df) == len(QUALITY_KEYS)
