import unittest

from demo_launcher.models import DownloadProgress, EntryKind, ListingEntry, ListingResult, NavigationState

ROOT = "https://demos.example.com/aqtion/"


class ListingResultTests(unittest.TestCase):
    def test_duplicate_display_name_keeps_later_entry(self):
        first = ListingEntry(kind=EntryKind.FILE, name="final.dm2", real_identifier="final.dm2")
        second = ListingEntry(kind=EntryKind.FILE, name="final.dm2", real_identifier="final%2Edm2")
        other = ListingEntry(kind=EntryKind.FOLDER, name="final.dm2", real_identifier="final.dm2/")
        result = ListingResult(folder=ROOT, entries=(other, first, second))

        with self.assertLogs("demo_launcher.models", level="WARNING") as logs:
            mapping = result.by_display_name()

        self.assertIs(second, mapping["final.dm2"])
        self.assertIs(other, mapping["[DIR] final.dm2"])
        self.assertEqual(2, len(mapping))
        self.assertEqual(1, len(logs.records))
        self.assertIn("final%2Edm2", logs.output[0])

    def test_counts(self):
        result = ListingResult(
            folder=ROOT,
            entries=(
                ListingEntry(kind=EntryKind.FOLDER, name="2024", real_identifier="2024/"),
                ListingEntry(kind=EntryKind.FILE, name="a.dm2", real_identifier="a.dm2"),
            ),
        )

        self.assertEqual(1, result.folder_count)
        self.assertEqual(1, result.file_count)
        self.assertFalse(result.is_empty)
        self.assertTrue(ListingResult(folder=ROOT).is_empty)


class NavigationStateTests(unittest.TestCase):
    def test_descend_and_pop(self):
        state = NavigationState.for_source(ROOT).descended(ROOT + "2024/")

        self.assertEqual((ROOT,), state.history)
        self.assertEqual(ROOT, state.previous_folder)

        popped = state.popped(ROOT)

        self.assertEqual(ROOT, popped.current_folder)
        self.assertFalse(popped.can_go_back)


class DownloadProgressTests(unittest.TestCase):
    def test_percent(self):
        self.assertEqual(50, DownloadProgress(received=5, total=10).percent)
        self.assertEqual(100, DownloadProgress(received=12, total=10).percent)
        self.assertIsNone(DownloadProgress(received=5).percent)


if __name__ == "__main__":
    unittest.main()
