"""
Unit tests for the `metadata` module.

"""

import unittest

from FlowRead.keywords import KeywordStore
from FlowRead.metadata import FCSMetadata, ParameterDescriptor
from FlowRead.exceptions import (MissingRequiredKeywordError,
                                 InvalidMetadataError,
                                 InvalidDataSegmentError,
                                 ResourceLimitError)

from fcs_builder import make_parameter, make_keywords

class TestFCSMetadata(unittest.TestCase):
    def setUp(self):
        self.parameters = [make_parameter('FSC-A', 16),
                           make_parameter('SSC-A', 32),
                           make_parameter('FL1-A', 8, long_name='GFP',
                                          amplification='4,1',
                                          param_range=256)]

    def text(self, overrides=None, parameters=None, **kwargs):
        if parameters is None:
            parameters = self.parameters
        keywords = make_keywords(parameters, 1000, **kwargs)
        text = KeywordStore()
        for key, value in keywords:
            if overrides and key in overrides:
                value = overrides[key]
                if value is None:
                    continue
            text.add(key, value)
        return text

    def test_valid(self):
        metadata = FCSMetadata(self.text())
        self.assertEqual(metadata.datatype, 'I')
        self.assertEqual(metadata.mode, 'L')
        self.assertEqual(metadata.byte_order, '1,2,3,4')
        self.assertFalse(metadata.big_endian)
        self.assertEqual(metadata.num_parameters, 3)
        self.assertEqual(metadata.num_events, 1000)
        self.assertEqual(metadata.next_data, 0)

    def test_layout(self):
        metadata = FCSMetadata(self.text())
        self.assertEqual([p.byte_width for p in metadata.parameters],
                         [2, 4, 1])
        self.assertEqual([p.byte_offset for p in metadata.parameters],
                         [0, 2, 6])
        self.assertEqual(metadata.record_size, 7)
        self.assertEqual(metadata.data_size, 7000)

    def test_parameter_descriptor(self):
        param = FCSMetadata(self.text()).parameters[2]
        self.assertIsInstance(param, ParameterDescriptor)
        self.assertEqual(param.index, 3)
        self.assertEqual(param.name, 'FL1-A')
        self.assertEqual(param.long_name, 'GFP')
        self.assertEqual(param.bit_width, 8)
        self.assertEqual(param.range, 256.0)
        self.assertEqual(param.amplification_type, (4.0, 1.0))
        self.assertIsNone(param.gain)
        self.assertEqual(param.datatype, 'I')
        self.assertEqual(param.display_name, 'FL1-A (GFP)')

    def test_display_name_without_long_name(self):
        param = FCSMetadata(self.text()).parameters[0]
        self.assertIsNone(param.long_name)
        self.assertEqual(param.display_name, 'FSC-A')

    def test_big_endian(self):
        metadata = FCSMetadata(self.text(byteord='4,3,2,1'))
        self.assertTrue(metadata.big_endian)
        metadata = FCSMetadata(self.text(byteord='2,1'))
        self.assertTrue(metadata.big_endian)
        metadata = FCSMetadata(self.text(byteord='1,2'))
        self.assertFalse(metadata.big_endian)

    def test_lower_case_keywords(self):
        text = KeywordStore((key.lower(), value)
                            for key, value in self.text().items())
        metadata = FCSMetadata(text)
        self.assertEqual(metadata.num_parameters, 3)
        self.assertEqual(metadata.parameters[1].name, 'SSC-A')

    def test_gain(self):
        text = self.text()
        text.add('$P2G', '2.5')
        metadata = FCSMetadata(text)
        self.assertEqual(metadata.parameters[1].gain, 2.5)

    def test_gain_invalid(self):
        text = self.text()
        text.add('$P2G', 'high')
        with self.assertRaises(InvalidMetadataError):
            FCSMetadata(text)

    def test_gain_non_finite(self):
        for value in ('inf', 'nan'):
            with self.subTest(value=value):
                text = self.text()
                text.add('$P2G', value)
                with self.assertRaises(InvalidMetadataError):
                    FCSMetadata(text)

    def test_non_standard_amplification_type(self):
        """
        Test that $PnE = 'f1,0' is interpreted as 'f1,1'.

        """
        metadata = FCSMetadata(self.text({'$P3E': '4,0'}))
        self.assertEqual(metadata.parameters[2].amplification_type,
                         (4.0, 1.0))

    def test_linear_amplification_type(self):
        metadata = FCSMetadata(self.text({'$P1E': '0,0'}))
        self.assertEqual(metadata.parameters[0].amplification_type,
                         (0.0, 0.0))

    def test_invalid_amplification_type(self):
        for value in ('4', '4,1,2', 'a,b'):
            with self.subTest(value=value):
                with self.assertRaises(InvalidMetadataError):
                    FCSMetadata(self.text({'$P3E': value}))

    def test_missing_par(self):
        with self.assertRaises(MissingRequiredKeywordError) as cm:
            FCSMetadata(self.text({'$PAR': None, '$TOT': None}))
        self.assertEqual(cm.exception.keyword, '$PAR')

    def test_invalid_par(self):
        for value in ('0', '-1', 'three'):
            with self.subTest(value=value):
                with self.assertRaises(InvalidMetadataError):
                    FCSMetadata(self.text({'$PAR': value}))

    def test_missing_required_keyword(self):
        for keyword in ('$BYTEORD', '$DATATYPE', '$MODE', '$TOT',
                        '$NEXTDATA', '$BEGINDATA', '$ENDSTEXT'):
            with self.subTest(keyword=keyword):
                with self.assertRaises(MissingRequiredKeywordError) as cm:
                    FCSMetadata(self.text({keyword: None}))
                self.assertEqual(cm.exception.keyword, keyword)

    def test_missing_parameter_keyword(self):
        with self.assertRaises(MissingRequiredKeywordError) as cm:
            FCSMetadata(self.text({'$P2N': None}))
        self.assertEqual(cm.exception.keyword, '$P2N')

    def test_missing_keyword_is_key_error(self):
        with self.assertRaises(KeyError):
            FCSMetadata(self.text({'$P3R': None}))

    def test_histogram_mode(self):
        with self.assertRaises(InvalidMetadataError):
            FCSMetadata(self.text({'$MODE': 'H'}))

    def test_invalid_datatype(self):
        with self.assertRaises(InvalidMetadataError):
            FCSMetadata(self.text({'$DATATYPE': 'X'}))

    def test_invalid_parameter_datatype(self):
        text = self.text()
        text.add('$P1DATATYPE', 'Q')
        with self.assertRaises(InvalidMetadataError):
            FCSMetadata(text)

    def test_mixed_byte_order(self):
        with self.assertRaises(InvalidDataSegmentError):
            FCSMetadata(self.text(byteord='3,4,1,2'))

    def test_non_byte_aligned_integer(self):
        parameters = [make_parameter('FSC-A', 12)]
        with self.assertRaises(InvalidDataSegmentError):
            FCSMetadata(self.text(parameters=parameters))

    def test_float_bit_width(self):
        parameters = [make_parameter('FSC-A', 16)]
        with self.assertRaises(InvalidDataSegmentError):
            FCSMetadata(self.text(parameters=parameters, datatype='F'))
        with self.assertRaises(InvalidDataSegmentError):
            FCSMetadata(self.text(parameters=parameters, datatype='D'))

    def test_float_layout(self):
        parameters = [make_parameter('FSC-A', 32),
                      make_parameter('SSC-A', 32)]
        metadata = FCSMetadata(self.text(parameters=parameters,
                                         datatype='F'))
        self.assertEqual(metadata.record_size, 8)
        self.assertEqual([p.datatype for p in metadata.parameters],
                         ['F', 'F'])

    def test_parameter_datatype_override(self):
        parameters = [make_parameter('FSC-A', 32),
                      make_parameter('Time', 64, datatype='D')]
        metadata = FCSMetadata(self.text(parameters=parameters,
                                         datatype='F'))
        self.assertEqual([p.datatype for p in metadata.parameters],
                         ['F', 'D'])
        self.assertEqual([p.byte_offset for p in metadata.parameters],
                         [0, 4])
        self.assertEqual(metadata.record_size, 12)

    def test_ascii_layout(self):
        parameters = [make_parameter('FSC-A', 5), make_parameter('SSC-A', 3)]
        metadata = FCSMetadata(self.text(parameters=parameters,
                                         datatype='A'))
        self.assertEqual([p.byte_width for p in metadata.parameters], [5, 3])
        self.assertEqual(metadata.record_size, 8)

    def test_delimited_ascii(self):
        text = self.text(datatype='A')
        text = KeywordStore((k, '*' if k.endswith('B') and k != '$BYTEORD'
                             else v) for k, v in text.items())
        with self.assertRaises(InvalidDataSegmentError):
            FCSMetadata(text)

    def test_invalid_range(self):
        for value in ('0', '-1024', 'inf', 'nan', 'wide'):
            with self.subTest(value=value):
                with self.assertRaises(InvalidMetadataError):
                    FCSMetadata(self.text({'$P1R': value}))

    def test_float_range(self):
        metadata = FCSMetadata(self.text({'$P1R': '262144.0'}))
        self.assertEqual(metadata.parameters[0].range, 262144.0)

    def test_invalid_tot(self):
        with self.assertRaises(InvalidMetadataError):
            FCSMetadata(self.text({'$TOT': '-5'}))

    def test_max_events(self):
        with self.assertRaises(ResourceLimitError):
            FCSMetadata(self.text(), max_events=999)
        metadata = FCSMetadata(self.text(), max_events=1000)
        self.assertEqual(metadata.num_events, 1000)

    def test_next_data(self):
        with self.assertWarns(UserWarning):
            metadata = FCSMetadata(self.text({'$NEXTDATA': '123456'}))
        self.assertEqual(metadata.next_data, 123456)

    def test_blank_long_name(self):
        metadata = FCSMetadata(self.text({'$P3S': ' '}))
        self.assertIsNone(metadata.parameters[2].long_name)
        self.assertEqual(metadata.parameters[2].display_name, 'FL1-A')

    def test_plain_dict(self):
        metadata = FCSMetadata(dict(self.text()))
        self.assertEqual(metadata.num_parameters, 3)

if __name__ == '__main__':
    unittest.main()
