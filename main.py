"""Main application for the MCF directory map: load, normalize and export the dataset"""
import logging
import json
from typing import Dict, List, Optional
import pandas as pd

from config import Config
from models import FilterCriteria, LocationRecord, VisibilityState
from data_collection.feed_client import FeedClient
from data_processing.location_cleaner import LocationCleaner
from directory.filter_pipeline import FilterPipeline
from utils.geographic_validator import GeographicValidator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class DirectoryMapTool:
    """Batch counterpart of the interactive map: one load, one identity filter"""

    def __init__(self, config=None, feed_client: Optional[FeedClient] = None):
        self.config = config if config else Config
        self.feed_client = feed_client or FeedClient()
        self.cleaner = LocationCleaner(GeographicValidator(self.config.BOUNDS))
        self.records: List[LocationRecord] = []

    def load(self, show: Optional[str] = None) -> List[LocationRecord]:
        raw = self.feed_client.fetch()
        self.records = self.cleaner.clean_location_data(raw, show=show if show is not None else self.config.SHOW)
        return self.records

    def summarize(self, records: Optional[List[LocationRecord]] = None) -> Dict:
        """Counts per category and per facet value"""
        records = self.records if records is None else records
        if not records:
            return {'total': 0, 'ecoles': 0, 'moniteurs': 0, 'facets': {}}

        df = pd.DataFrame([{
            'code': r.code,
            'ecole': r.is_school,
            'discipline': sorted(r.disciplines),
            'prestation': sorted(r.services),
            'test_mcf': sorted(r.certifications),
        } for r in records])

        facets = {}
        for column in ('discipline', 'prestation', 'test_mcf'):
            counts = df[column].explode().dropna().value_counts()
            facets[column] = {str(k): int(v) for k, v in counts.sort_index().items()}

        ecoles = int(df['ecole'].sum())
        return {
            'total': len(df),
            'ecoles': ecoles,
            'moniteurs': len(df) - ecoles,
            'facets': facets,
        }

    def run(self) -> Dict:
        records = self.load()
        pipeline = FilterPipeline(config=self.config)
        dataset = pipeline.run(records, VisibilityState(), FilterCriteria())
        summary = self.summarize(records)
        logger.info(f"Directory dataset: {summary['total']} locations "
                    f"({summary['ecoles']} écoles, {summary['moniteurs']} moniteurs)")
        return {
            'summary': summary,
            'label': dataset.result_label,
            'data': dataset.to_geojson(),
        }


def main():
    """Main entry point"""
    try:
        tool = DirectoryMapTool()
        results = tool.run()

        with open("directory_export.json", "w", encoding="utf-8") as f:
            json.dump(results, f, indent=2, ensure_ascii=False)

        logger.info("Export complete. Results saved to directory_export.json")

    except Exception as e:
        logger.error(f"Application error: {e}")
        raise


if __name__ == "__main__":
    main()
