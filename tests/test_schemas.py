import pytest
from pydantic import ValidationError

from schemas import AdapterConfig, FieldMapping, Mate, Region, SyntenyFeature


class TestRegion:
    def test_camel_case_input(self):
        region = Region(**{"refName": "chr1", "start": 0, "end": 10, "assemblyName": "A"})
        assert region.ref_name == "chr1"
        assert region.assembly_name == "A"

    @pytest.mark.parametrize("start,end", [(10, 10), (20, 10), (-1, 10)])
    def test_invalid_range(self, start, end):
        with pytest.raises(ValidationError):
            Region(ref_name="chr1", start=start, end=end)

    def test_frozen(self):
        region = Region(ref_name="chr1", start=0, end=10)
        with pytest.raises(ValidationError):
            region.start = 5


class TestAdapterConfig:
    def test_defaults(self):
        config = AdapterConfig()
        assert config.url is None
        assert config.method == "GET"
        assert config.cache_timeout == 60000
        assert config.refresh_interval == 0
        assert config.append_region_params is True
        assert config.client_side_filter is False
        assert config.query_name_field == "query.name"
        assert config.alignments_field == "alignments"

    def test_camel_case_configuration(self):
        config = AdapterConfig(**{
            "url": "https://api.example.com/synteny",
            "appendRegionParams": False,
            "assemblyNames": ["grape", "peach"],
            "clientSideFilter": True,
            "cacheTimeout": 300000,
            "queryNameField": "qry.chrom",
        })
        assert config.append_region_params is False
        assert config.assembly_names == ["grape", "peach"]
        assert config.cache_timeout == 300000
        assert config.field_mapping().query_name_field == "qry.chrom"

    def test_field_mapping_carries_every_path(self):
        config = AdapterConfig(strand_field="ori")
        mapping = config.field_mapping()
        assert isinstance(mapping, FieldMapping)
        assert mapping.strand_field == "ori"
        assert mapping.model_dump() == FieldMapping(strand_field="ori").model_dump()

    def test_method_is_normalised(self):
        assert AdapterConfig(method="post").method == "POST"
        with pytest.raises(ValidationError):
            AdapterConfig(method="PUT")

    @pytest.mark.parametrize("names", [["A"], ["A", "B", "C"]])
    def test_assembly_names_must_be_a_pair(self, names):
        with pytest.raises(ValidationError):
            AdapterConfig(assembly_names=names)

    def test_negative_intervals_rejected(self):
        with pytest.raises(ValidationError):
            AdapterConfig(cache_timeout=-1)
        with pytest.raises(ValidationError):
            AdapterConfig(refresh_interval=-5)


class TestSyntenyFeature:
    def feature(self, **overrides):
        data = dict(
            unique_id="chr1:0-10_chr2:0-10",
            ref_name="chr1",
            start=0,
            end=10,
            strand=1,
            mate=Mate(ref_name="chr2", start=0, end=10),
            synteny_id=0,
        )
        data.update(overrides)
        return SyntenyFeature(**data)

    def test_serializes_camel_case(self):
        dumped = self.feature().model_dump(by_alias=True)
        assert dumped["uniqueId"] == "chr1:0-10_chr2:0-10"
        assert dumped["refName"] == "chr1"
        assert dumped["mate"]["refName"] == "chr2"
        assert dumped["syntenyId"] == 0

    def test_strand_must_be_signed_unit(self):
        with pytest.raises(ValidationError):
            self.feature(strand=0)

    def test_ranges_checked(self):
        with pytest.raises(ValidationError):
            self.feature(start=10, end=10)
        with pytest.raises(ValidationError):
            self.feature(mate=Mate(ref_name="chr2", start=5, end=1))
