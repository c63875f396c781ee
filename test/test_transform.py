"""
`transform` module unit tests.

"""

import math
import unittest

import numpy as np

import FlowRead.io
import FlowRead.transform
from FlowRead.exceptions import ColumnNotFoundError

from fcs_builder import make_parameter, make_fcs_buffer

class TestArcsinhArray(unittest.TestCase):
    def setUp(self):
        self.d = np.array([
            [1, 7, 2],
            [2, 8, 3],
            [3, 9, 4],
            [4, 10, 5],
            [5, 1, 6],
            [6, 2, 7],
            [7, 3, 8],
            [8, 4, 9],
            [9, 5, 10],
            [10, 6, 1],
            ], dtype=np.float64)

    def test_arcsinh_original_integrity(self):
        db = self.d.copy()
        dt = FlowRead.transform.to_arcsinh(self.d, channels=[0,1])
        np.testing.assert_array_equal(self.d, db)
        self.assertIsNot(dt, self.d)

    def test_arcsinh_1d(self):
        dt = FlowRead.transform.to_arcsinh(self.d, channels=1, scale=5.0)
        np.testing.assert_array_equal(dt[:,0], self.d[:,0])
        np.testing.assert_allclose(dt[:,1], np.arcsinh(self.d[:,1]/5.0))
        np.testing.assert_array_equal(dt[:,2], self.d[:,2])

    def test_arcsinh_2d(self):
        dt = FlowRead.transform.to_arcsinh(self.d, channels=[0,2], scale=2.0)
        np.testing.assert_allclose(dt[:,0], np.arcsinh(self.d[:,0]/2.0))
        np.testing.assert_array_equal(dt[:,1], self.d[:,1])
        np.testing.assert_allclose(dt[:,2], np.arcsinh(self.d[:,2]/2.0))

    def test_arcsinh_default_channel(self):
        dt = FlowRead.transform.to_arcsinh(self.d)
        np.testing.assert_allclose(dt, np.arcsinh(self.d/5.0))

    def test_arcsinh_integer_input_copy(self):
        d = self.d.astype(np.int64)
        dt = FlowRead.transform.to_arcsinh(d, channels=0, scale=1.0)
        self.assertEqual(dt.dtype, np.float64)
        self.assertAlmostEqual(dt[0,0], math.asinh(1.0))

    def test_arcsinh_in_place(self):
        d = self.d.copy()
        dt = FlowRead.transform.to_arcsinh(d, channels=0, copy=False)
        self.assertIs(dt, d)
        np.testing.assert_allclose(d[:,0], np.arcsinh(self.d[:,0]/5.0))

    def test_arcsinh_in_place_integer_error(self):
        d = self.d.astype(np.int64)
        with self.assertRaises(ValueError):
            FlowRead.transform.to_arcsinh(d, channels=0, copy=False)

    def test_arcsinh_negative_and_nan(self):
        d = np.array([[-100.0], [0.0], [np.nan]])
        dt = FlowRead.transform.to_arcsinh(d, channels=0, scale=5.0)
        self.assertAlmostEqual(dt[0,0], -math.asinh(20.0))
        self.assertEqual(dt[1,0], 0.0)
        self.assertTrue(np.isnan(dt[2,0]))

    def test_arcsinh_scale_error(self):
        for scale in (0, -5.0, np.inf, np.nan, 'five', None):
            with self.subTest(scale=scale):
                with self.assertRaises(ValueError):
                    FlowRead.transform.to_arcsinh(self.d, scale=scale)

    def test_arcsinh_repeated_channel(self):
        dt = FlowRead.transform.to_arcsinh(self.d, channels=[0, 0, -3],
                                           scale=2.0)
        np.testing.assert_allclose(dt[:,0], np.arcsinh(self.d[:,0]/2.0))
        np.testing.assert_array_equal(dt[:,1:], self.d[:,1:])

    def test_transform_custom_function(self):
        dt = FlowRead.transform.transform(self.d,
                                          channels=None,
                                          transform_fxn=lambda x: 2*x,
                                          def_channels=[1])
        np.testing.assert_array_equal(dt[:,0], self.d[:,0])
        np.testing.assert_array_equal(dt[:,1], 2*self.d[:,1])

class TestArcsinhFlowSample(unittest.TestCase):
    def setUp(self):
        parameters = [make_parameter('FSC-A', 32),
                      make_parameter('FL1-A', 32, long_name='GFP')]
        self.events = [[100.0, -10.0], [50.0, 0.0], [0.0, 2.5]]
        self.sample = FlowRead.io.FlowSample(make_fcs_buffer(
            parameters, self.events, datatype='F'))

    def test_arcsinh_copy(self):
        st = FlowRead.transform.to_arcsinh(self.sample, channels='FL1-A')
        self.assertIsInstance(st, FlowRead.io.FlowSample)
        self.assertIsNot(st, self.sample)
        np.testing.assert_array_equal(self.sample.data, self.events)
        np.testing.assert_allclose(
            st[:, 'FL1-A'],
            np.arcsinh(np.array([-10.0, 0.0, 2.5])/5.0))
        self.assertEqual(st.column_names(), ['FSC-A', 'FL1-A (GFP)'])

    def test_arcsinh_display_name(self):
        st = FlowRead.transform.to_arcsinh(self.sample,
                                           channels=['FL1-A (GFP)'],
                                           scale=10.0)
        np.testing.assert_array_equal(st[:, 'FSC-A'], [100.0, 50.0, 0.0])
        self.assertAlmostEqual(st[0, 'FL1-A (GFP)'], math.asinh(-1.0))

    def test_arcsinh_display_and_short_name(self):
        st = FlowRead.transform.to_arcsinh(self.sample,
                                           channels=['FL1-A (GFP)', 'FL1-A'],
                                           scale=10.0)
        self.assertAlmostEqual(st[0, 'FL1-A'], math.asinh(-1.0))

    def test_arcsinh_unknown_channel(self):
        with self.assertRaises(ColumnNotFoundError):
            FlowRead.transform.to_arcsinh(self.sample,
                                          channels=['FSC-A', 'FSC-H'],
                                          copy=False)
        np.testing.assert_array_equal(self.sample.data, self.events)

if __name__ == '__main__':
    unittest.main()
