"""
Tests for configuration, preferences and the frame buffer pool.
"""

import copy
import json
import os
import sys
import tempfile
import unittest

import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from preferences import PreferencesSet  # type: ignore
from utils import DEFAULT_CONFIG, FrameBufferPool, get_config, save_config, validate_config  # type: ignore


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        config = get_config()
        self.assertEqual(config['preferences']['Model3D Pipeline']['LowerBound'], [30, 200, 100])
        self.assertEqual(config['preferences']['Model3D Pipeline']['FocalLength'], 100.0)
        self.assertTrue(validate_config(config))

    def test_defaults_are_not_shared(self):
        config = get_config()
        config['preferences']['Model3D Pipeline']['MinArea'] = 999
        self.assertEqual(DEFAULT_CONFIG['preferences']['Model3D Pipeline']['MinArea'], 20.0)

    def test_file_overrides_single_preference(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'config.json')
            with open(path, 'w') as f:
                json.dump({'video_width': 320, 'preferences': {'Model3D Pipeline': {'FocalLength': 640}}}, f)
            config = get_config(path)

        self.assertEqual(config['video_width'], 320)
        self.assertEqual(config['preferences']['Model3D Pipeline']['FocalLength'], 640)
        self.assertEqual(config['preferences']['Model3D Pipeline']['MinArea'], 20.0)
        self.assertIn('Vision', config['preferences'])

    def test_missing_or_broken_file_gives_defaults(self):
        self.assertEqual(get_config('/nonexistent/config.json'), DEFAULT_CONFIG)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'broken.json')
            with open(path, 'w') as f:
                f.write('{not json')
            self.assertEqual(get_config(path), DEFAULT_CONFIG)

    def test_save_round_trip(self):
        config = get_config()
        config['preferences']['Vision']['Crosshairs X'] = 123
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'saved.json')
            self.assertTrue(save_config(config, path))
            self.assertEqual(get_config(path), config)

    def test_validation_failures(self):
        cases = [
            lambda c: c.update(video_width=0),
            lambda c: c.pop('preferences'),
            lambda c: c['preferences']['Model3D Pipeline'].update(LowerBound=[1, 2]),
            lambda c: c['preferences']['Model3D Pipeline'].update(MinArea=-1),
            lambda c: c['preferences']['Model3D Pipeline'].update(FocalLength=0),
        ]
        for mutate in cases:
            config = copy.deepcopy(DEFAULT_CONFIG)
            mutate(config)
            self.assertFalse(validate_config(config))


class TestPreferences(unittest.TestCase):

    def test_registration_seeds_defaults(self):
        store = {}
        prefs = PreferencesSet('Test', store)
        area = prefs.add_double('MinArea', 20)
        bound = prefs.add_scalar('LowerBound', 'HSV', 1, 2, 3)
        self.assertEqual(area.get(), 20.0)
        self.assertEqual(bound.get(), (1.0, 2.0, 3.0))
        self.assertEqual(store['Test']['LowerBound'], [1.0, 2.0, 3.0])

    def test_existing_values_win(self):
        store = {'Test': {'FocalLength': 640}}
        focal = PreferencesSet('Test', store).add_double('FocalLength', 100)
        self.assertEqual(focal.get(), 640.0)

    def test_get_reads_live_value(self):
        store = {}
        count = PreferencesSet('Test', store).add_int('Count', 1)
        store['Test']['Count'] = 5
        self.assertEqual(count.get(), 5)
        count.set(7)
        self.assertEqual(store['Test']['Count'], 7)

    def test_scalar_needs_three_channels(self):
        prefs = PreferencesSet('Test', {})
        with self.assertRaises(ValueError):
            prefs.add_scalar('Bad', 'HSV', 1, 2)
        bound = prefs.add_scalar('Bound', 'HSV', 1, 2, 3)
        with self.assertRaises(ValueError):
            bound.set([1, 2])


class TestFrameBufferPool(unittest.TestCase):

    def test_reuse_and_reallocation(self):
        pool = FrameBufferPool()
        with pool.acquire(work=((4, 4), np.uint8)) as bufs:
            first = bufs['work']
        with pool.acquire(work=((4, 4), np.uint8)) as bufs:
            self.assertIs(bufs['work'], first)
        with pool.acquire(work=((8, 4), np.uint8)) as bufs:
            self.assertEqual(bufs['work'].shape, (8, 4))
        self.assertEqual(pool.allocations, 2)

    def test_released_on_error(self):
        pool = FrameBufferPool()
        with self.assertRaises(RuntimeError):
            with pool.acquire(work=((2, 2), np.float32)):
                raise RuntimeError('boom')
        with pool.acquire(work=((2, 2), np.float32)):
            pass
        self.assertEqual(pool.allocations, 1)


if __name__ == '__main__':
    unittest.main()
