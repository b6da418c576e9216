import unittest

from vetclinic import create_app
from vetclinic.extensions import db
from vetclinic.models import Pet, User


class TestSeedDemo(unittest.TestCase):

    def setUp(self):
        self.app = create_app('testing')
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def test_seed_demo_is_idempotent(self):
        runner = self.app.test_cli_runner()

        first = runner.invoke(args=['seed-demo'])
        second = runner.invoke(args=['seed-demo'])

        self.assertIn('Created 4 users and 3 pets', first.output)
        self.assertIn('Created 0 users and 0 pets', second.output)
        self.assertEqual(User.query.count(), 4)
        self.assertEqual(Pet.query.count(), 3)
        self.assertEqual(User.query.filter_by(role='veterinarian').count(), 1)


if __name__ == '__main__':
    unittest.main()
