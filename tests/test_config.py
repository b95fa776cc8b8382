"""
Unit tests for AudioConfig
Environment loading, overrides and range validation
"""

import unittest
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from unittest import mock
from wavetable_osc.config import AudioConfig


def clean_env(**values):
    """Environment without any WAVETABLE_* variables, plus `values`."""
    env = {k: v for k, v in os.environ.items() if not k.startswith('WAVETABLE_')}
    env.update(values)
    return mock.patch.dict(os.environ, env, clear=True)


class TestAudioConfig(unittest.TestCase):
    """Test AudioConfig defaults and validation"""

    def test_defaults(self):
        config = AudioConfig()
        self.assertEqual(config.sample_rate, 44100)
        self.assertEqual(config.buffer_size, 256)
        self.assertEqual(config.channels, 2)
        self.assertEqual(config.table_length, 1024)
        self.assertEqual(config.amplitude, 0.5)
        self.assertEqual(config.frequency, 440.0)
        self.assertEqual(config.interpolation, "linear")
        self.assertEqual(config.duration, 4.0)
        self.assertIsNone(config.device)
        self.assertIs(config.validate(), config)

    def test_from_env(self):
        with clean_env(WAVETABLE_SAMPLE_RATE='48000',
                       WAVETABLE_BUFFER_SIZE='512',
                       WAVETABLE_TABLE_LENGTH='2048',
                       WAVETABLE_INTERPOLATION='TRUNCATE',
                       WAVETABLE_DURATION='forever',
                       WAVETABLE_OUTPUT_DEVICE='3',
                       WAVETABLE_VERBOSE='1'):
            config = AudioConfig.from_env()

        self.assertEqual(config.sample_rate, 48000)
        self.assertEqual(config.buffer_size, 512)
        self.assertEqual(config.table_length, 2048)
        self.assertEqual(config.interpolation, "truncate")
        self.assertIsNone(config.duration)
        self.assertEqual(config.device, 3)
        self.assertTrue(config.verbose)

    def test_from_env_device_name(self):
        with clean_env(WAVETABLE_OUTPUT_DEVICE='pulse'):
            self.assertEqual(AudioConfig.from_env().device, 'pulse')

    def test_from_env_defaults_match_dataclass(self):
        with clean_env():
            self.assertEqual(AudioConfig.from_env(), AudioConfig())

    def test_overrides_win_over_env(self):
        with clean_env(WAVETABLE_FREQUENCY='220'):
            config = AudioConfig.from_env(frequency=880.0)
        self.assertEqual(config.frequency, 880.0)

    def test_unknown_override(self):
        with clean_env():
            with self.assertRaises(ValueError):
                AudioConfig.from_env(polyphony=8)

    def test_invalid_values(self):
        invalid = [
            {'sample_rate': 1000},
            {'sample_rate': 400000},
            {'buffer_size': 8},
            {'channels': 0},
            {'channels': 9},
            {'table_length': 0},
            {'amplitude': 1.01},
            {'amplitude': -0.5},
            {'frequency': -440.0},
            {'frequency': float('inf')},
            {'interpolation': 'cubic'},
            {'initial_phase': 1.0},
            {'duration': 0.0},
            {'duration': -1.0},
            {'duration': float('inf')},
            {'duration': float('nan')},
        ]
        for fields in invalid:
            with self.subTest(**fields):
                with self.assertRaises(ValueError) as ctx:
                    AudioConfig(**fields).validate()
                self.assertIn(next(iter(fields)), str(ctx.exception))

    def test_small_table_validates_quietly(self):
        with mock.patch('builtins.print') as fake_print:
            AudioConfig(table_length=64).validate()
        fake_print.assert_not_called()

    def test_table_length_warning(self):
        self.assertIn('64', AudioConfig(table_length=64).table_length_warning())
        self.assertIn('16384', AudioConfig(table_length=16384).table_length_warning())
        self.assertIsNone(AudioConfig(table_length=1024).table_length_warning())

    def test_forever_duration_is_valid(self):
        self.assertIsNone(AudioConfig(duration=None).validate().duration)

    def test_derived_values(self):
        config = AudioConfig(frequency=441.0, table_length=1024, sample_rate=44100)
        self.assertAlmostEqual(config.phase_increment, 10.24)
        self.assertAlmostEqual(AudioConfig().buffer_ms, 5.805, places=3)

    def test_print_config(self):
        with mock.patch('builtins.print') as fake_print:
            AudioConfig().print_config()
        output = '\n'.join(str(c[0][0]) if c[0] else '' for c in fake_print.call_args_list)
        self.assertIn('WAVETABLE OSCILLATOR', output)
        self.assertIn('table_length: 1024', output)
        self.assertIn('phase_increment', output)


if __name__ == '__main__':
    unittest.main()
