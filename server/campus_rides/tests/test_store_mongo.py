import unittest
from unittest.mock import MagicMock, patch

from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from campus_rides.config import MaintenanceConfig
from campus_rides.store import (
    MISSING_PASSWORD_FILTER,
    RIDE_LOCATIONS,
    USERS,
    InMemoryDocumentStore,
    MongoDocumentStore,
    StoreConnectionError,
    StoreOperationError,
    open_store,
)


class MongoDocumentStoreTests(unittest.TestCase):
    """
    Exercises the pymongo calls against a mocked client.
    """

    def setUp(self):
        self.client = MagicMock()
        self.db = self.client.get_default_database.return_value
        self.collection = self.db.__getitem__.return_value
        self.store = MongoDocumentStore(
            "mongodb://localhost:27017/iitd-db", client=self.client
        )

    def test_uses_database_from_connection_string(self):
        self.client.get_default_database.assert_called_once_with(default="iitd-db")

    def test_count_uses_missing_password_filter(self):
        self.collection.count_documents.return_value = 4

        self.assertEqual(self.store.count_users_missing_password(), 4)
        self.db.__getitem__.assert_called_with(USERS)
        self.collection.count_documents.assert_called_once_with(MISSING_PASSWORD_FILTER)

    def test_bulk_update_sets_hash_and_clears_reset_token(self):
        self.collection.update_many.return_value.modified_count = 2

        modified = self.store.set_password_for_users_missing_password("$2b$04$hash")

        self.assertEqual(modified, 2)
        self.collection.update_many.assert_called_once_with(
            MISSING_PASSWORD_FILTER,
            {
                "$set": {"password": "$2b$04$hash"},
                "$unset": {"resetPasswordToken": "", "resetPasswordExpires": ""},
            },
        )

    def test_list_indexes_maps_key_and_unique_flag(self):
        self.collection.list_indexes.return_value = [
            {"v": 2, "name": "_id_", "key": {"_id": 1}},
            {"v": 2, "name": "email_1", "key": {"email": 1}, "unique": True},
        ]

        indexes = self.store.list_indexes(USERS)

        self.assertEqual([index.name for index in indexes], ["_id_", "email_1"])
        self.assertEqual(indexes[1].key, {"email": 1})
        self.assertTrue(indexes[1].unique)
        self.assertFalse(indexes[0].unique)

    def test_duplicate_routes_from_aggregation(self):
        self.collection.aggregate.return_value = iter(
            [
                {
                    "_id": {"fromLocation": "Main Gate", "toLocation": "Hospital"},
                    "count": 2,
                    "ids": ["a", "b"],
                }
            ]
        )

        duplicates = self.store.find_duplicate_routes()

        self.db.__getitem__.assert_called_with(RIDE_LOCATIONS)
        self.assertEqual(duplicates[0].from_location, "Main Gate")
        self.assertEqual(duplicates[0].ids, ["a", "b"])

    def test_update_user_email_targets_one_user(self):
        self.collection.update_one.return_value.modified_count = 1

        modified = self.store.update_user_email("user-1", "sudo.sde@gmail.com")

        self.assertEqual(modified, 1)
        self.db.__getitem__.assert_called_with(USERS)
        self.collection.update_one.assert_called_once_with(
            {"_id": "user-1"}, {"$set": {"email": "sudo.sde@gmail.com"}}
        )

    def test_operation_failure_is_wrapped(self):
        self.collection.count_documents.side_effect = OperationFailure("not authorized")

        with self.assertRaises(StoreOperationError):
            self.store.count_users_missing_password()

    def test_requires_connection_string(self):
        with self.assertRaises(ValueError):
            MongoDocumentStore("")

    @patch("campus_rides.store.MongoClient")
    def test_connect_pings_and_releases_client_when_unreachable(self, mock_client_cls):
        client = mock_client_cls.return_value
        client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

        with self.assertRaises(StoreConnectionError):
            MongoDocumentStore.connect(MaintenanceConfig())

        client.admin.command.assert_called_once_with("ping")
        client.close.assert_called_once_with()

    @patch("campus_rides.store.MongoClient")
    def test_connect_returns_store_when_reachable(self, mock_client_cls):
        store = MongoDocumentStore.connect(
            MaintenanceConfig(connection_string="mongodb://db.internal:27017/rides")
        )

        self.assertIs(store.client, mock_client_cls.return_value)
        mock_client_cls.return_value.close.assert_not_called()


class OpenStoreTests(unittest.TestCase):
    def test_closes_store_when_block_raises(self):
        store = InMemoryDocumentStore()

        with self.assertRaises(RuntimeError):
            with open_store(MaintenanceConfig(), factory=lambda config: store):
                raise RuntimeError("boom")

        self.assertTrue(store.closed)

    def test_nothing_to_close_when_connect_fails(self):
        def unreachable(config):
            raise StoreConnectionError("down")

        with self.assertRaises(StoreConnectionError):
            with open_store(MaintenanceConfig(), factory=unreachable):
                self.fail("block must not run")


if __name__ == "__main__":
    unittest.main()
