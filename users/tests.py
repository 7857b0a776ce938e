from datetime import timedelta
from unittest import mock
import json

from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError
from django.test import Client, RequestFactory, TestCase, override_settings
from django.urls import reverse

from . import services
from .conf import AuthSettings, get_auth_settings, load_auth_settings
from .decorators import authenticate
from .exceptions import Conflict, InternalError, Unauthorized
from .middleware import LoginRedirectMiddleware, decide_redirect
from .models import User
from .tokens import TokenIssuer

SECRET = "test-secret-key-for-the-jobportal-suite-0123456789"
OTHER_SECRET = "a-completely-different-secret-key-0123456789abcdef"


def make_user(name='Alice', username='alice', email='alice@example.com', password='alicepass123'):
    user = User(name=name, username=username, email=email)
    user.set_password(password)
    user.save()
    return user


def issue_token(user_id):
    return TokenIssuer.from_settings(get_auth_settings()).issue(user_id)


class UserModelTests(TestCase):
    def setUp(self):
        self.user = make_user()

    def test_password_hashing(self):
        """Passwords are stored as one-way hashes"""
        self.assertNotEqual(self.user.password, 'alicepass123')
        self.assertTrue(self.user.check_password('alicepass123'))
        self.assertFalse(self.user.check_password('wrongpass'))

    def test_to_dict_hides_password(self):
        data = self.user.to_dict()
        self.assertEqual(data['username'], 'alice')
        self.assertNotIn('password', data)


class TokenIssuerTests(TestCase):
    def setUp(self):
        self.issuer = TokenIssuer(SECRET, lifetime=timedelta(minutes=5))

    def test_round_trip(self):
        token = self.issuer.issue(42)
        self.assertEqual(self.issuer.verify(token), 42)

    def test_token_carries_expiry(self):
        token = self.issuer.issue(42)
        payload = self.issuer.backend.decode(token)
        self.assertEqual(payload['userId'], 42)
        self.assertGreater(payload['exp'], payload['iat'])

    def test_no_lifetime_means_no_expiry(self):
        issuer = TokenIssuer(SECRET, lifetime=None)
        payload = issuer.backend.decode(issuer.issue(7))
        self.assertNotIn('exp', payload)

    def test_other_secret_is_rejected(self):
        token = TokenIssuer(OTHER_SECRET).issue(42)
        with self.assertRaises(Unauthorized):
            self.issuer.verify(token)

    def test_mutated_signature_is_rejected(self):
        token = self.issuer.issue(42)
        header, payload, signature = token.split('.')
        flipped = ('A' if signature[0] != 'A' else 'B') + signature[1:]
        with self.assertRaises(Unauthorized):
            self.issuer.verify('.'.join([header, payload, flipped]))

    def test_expired_token_is_rejected(self):
        issuer = TokenIssuer(SECRET, lifetime=timedelta(seconds=-30))
        with self.assertRaises(Unauthorized):
            self.issuer.verify(issuer.issue(42))

    def test_garbage_and_empty_tokens(self):
        for token in ('', None, 'not-a-token', 'a.b.c'):
            with self.assertRaises(Unauthorized):
                self.issuer.verify(token)

    def test_missing_user_claim(self):
        token = self.issuer.backend.encode({'sub': 'someone'})
        with self.assertRaises(Unauthorized) as ctx:
            self.issuer.verify(token)
        self.assertEqual(ctx.exception.errno, 0x20)

    def test_bounded_issuer_rejects_token_without_expiry(self):
        token = TokenIssuer(SECRET, lifetime=None).issue(1)
        with self.assertRaises(Unauthorized) as ctx:
            self.issuer.verify(token)
        self.assertEqual(ctx.exception.errno, 0x20)

    def test_secret_required(self):
        with self.assertRaises(ValueError):
            TokenIssuer('')


class AuthSettingsTests(TestCase):
    @override_settings(JWT_SECRET_KEY=None)
    def test_missing_secret_is_a_config_error(self):
        with self.assertRaises(ImproperlyConfigured):
            load_auth_settings()

    @override_settings(JWT_TOKEN_LIFETIME_MINUTES=0)
    def test_zero_lifetime_disables_expiry(self):
        self.assertIsNone(load_auth_settings().token_lifetime)

    def test_defaults(self):
        auth_settings = load_auth_settings()
        self.assertEqual(auth_settings.cookie_name, 'token')
        self.assertEqual(auth_settings.dashboard_path, '/dashboard')
        self.assertEqual(auth_settings.token_lifetime, timedelta(minutes=60))


class LoginServiceTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.issuer = TokenIssuer(SECRET)

    def test_token_bound_to_user(self):
        token = services.login('alice@example.com', 'alicepass123', self.issuer)
        self.assertEqual(self.issuer.verify(token), self.user.id)

    def test_wrong_password_and_unknown_email_look_the_same(self):
        with self.assertRaises(Unauthorized) as bad_password:
            services.login('alice@example.com', 'nope', self.issuer)
        with self.assertRaises(Unauthorized) as unknown:
            services.login('bob@example.com', 'alicepass123', self.issuer)
        self.assertEqual(bad_password.exception.message, unknown.exception.message)

    def test_store_failure_is_internal_error(self):
        with mock.patch.object(User.objects, 'filter', side_effect=DatabaseError("down")):
            with self.assertRaises(InternalError):
                services.login('alice@example.com', 'alicepass123', self.issuer)


class LoginViewTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = make_user()
        self.login_url = reverse('login')

    def post(self, data, **kwargs):
        return self.client.post(
            self.login_url,
            data=json.dumps(data),
            content_type='application/json',
            **kwargs
        )

    def test_successful_login(self):
        response = self.post({'email': 'alice@example.com', 'password': 'alicepass123'})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(
            TokenIssuer.from_settings(get_auth_settings()).verify(data['token']),
            self.user.id
        )

    def test_login_invalid_credentials(self):
        response = self.post({'email': 'alice@example.com', 'password': 'wrongpass'})
        self.assertEqual(response.status_code, 401)
        data = response.json()
        self.assertFalse(data['success'])
        self.assertEqual(data['errno'], 0x11)
        self.assertNotIn('token', data)

    def test_login_unknown_email(self):
        response = self.post({'email': 'nobody@example.com', 'password': 'alicepass123'})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['message'], "Invalid email or password.")

    def test_login_missing_fields(self):
        response = self.post({'email': 'alice@example.com'})
        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertEqual(data['errno'], 0x10)
        self.assertIn('password', data['errors'])

    def test_login_unknown_field(self):
        response = self.post({'email': 'alice@example.com', 'password': 'alicepass123', 'admin': True})
        self.assertEqual(response.status_code, 400)
        self.assertIn('admin', response.json()['errors'])

    def test_invalid_json(self):
        response = self.client.post(self.login_url, data='{not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['errno'], 0x61)

    def test_wrong_content_type(self):
        response = self.client.post(self.login_url, data={'email': 'alice@example.com'})
        self.assertEqual(response.status_code, 415)

    def test_get_not_allowed(self):
        response = self.client.get(self.login_url)
        self.assertEqual(response.status_code, 405)

    def test_unexpected_error_is_500(self):
        with mock.patch('users.views.services.login', side_effect=RuntimeError("boom")):
            response = self.post({'email': 'alice@example.com', 'password': 'alicepass123'})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['message'], "Internal server error.")


class AuthenticateTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.auth_settings = AuthSettings(secret_key=SECRET)
        self.token = TokenIssuer(SECRET).issue(5)

    def test_bearer_header(self):
        request = self.factory.get('/', HTTP_AUTHORIZATION=f'Bearer {self.token}')
        result = authenticate(request, self.auth_settings)
        self.assertTrue(result.authenticated)
        self.assertEqual(result.identity, 5)
        self.assertIsNone(result.response)

    def test_cookie_fallback(self):
        request = self.factory.get('/')
        request.COOKIES['token'] = self.token
        result = authenticate(request, self.auth_settings)
        self.assertTrue(result.authenticated)
        self.assertEqual(result.identity, 5)

    def test_header_wins_over_cookie(self):
        request = self.factory.get('/', HTTP_AUTHORIZATION='Bearer bogus')
        request.COOKIES['token'] = self.token
        self.assertFalse(authenticate(request, self.auth_settings).authenticated)

    def test_missing_token(self):
        result = authenticate(self.factory.get('/'), self.auth_settings)
        self.assertFalse(result.authenticated)
        self.assertIsNone(result.identity)
        self.assertEqual(result.response.status_code, 401)
        body = json.loads(result.response.content)
        self.assertEqual(body['message'], "Invalid or missing token.")
        self.assertEqual(body['errno'], 0x20)

    def test_non_bearer_scheme(self):
        request = self.factory.get('/', HTTP_AUTHORIZATION=f'Basic {self.token}')
        self.assertFalse(authenticate(request, self.auth_settings).authenticated)

    def test_token_from_other_secret(self):
        token = TokenIssuer(OTHER_SECRET).issue(5)
        request = self.factory.get('/', HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertFalse(authenticate(request, self.auth_settings).authenticated)


class CurrentUserTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = make_user()
        self.url = reverse('user')

    def test_authenticated_user_endpoint(self):
        response = self.client.get(self.url, HTTP_AUTHORIZATION=f'Bearer {issue_token(self.user.id)}')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['user']['email'], 'alice@example.com')
        self.assertNotIn('password', data['user'])

    def test_unauthenticated_user_endpoint(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 401)

    def test_token_for_deleted_user(self):
        token = issue_token(self.user.id)
        self.user.delete()
        response = self.client.get(self.url, HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['errno'], 0x34)


class UpdateUserTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.alice = make_user()
        self.bob = make_user(name='Bob', username='bob', email='bob@example.com', password='bobpass1234')
        self.url = reverse('user')

    def put(self, data, user=None):
        kwargs = {}
        if user is not None:
            kwargs['HTTP_AUTHORIZATION'] = f'Bearer {issue_token(user.id)}'
        return self.client.put(
            self.url,
            data=json.dumps(data),
            content_type='application/json',
            **kwargs
        )

    def test_update_own_record(self):
        response = self.put({'name': 'Robert', 'username': 'robert'}, user=self.bob)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['message'], "User updated successfully.")
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.name, 'Robert')
        self.assertEqual(self.bob.username, 'robert')
        self.assertEqual(self.bob.email, 'bob@example.com')

    def test_password_untouched(self):
        old_hash = self.bob.password
        self.put({'name': 'Robert'}, user=self.bob)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.password, old_hash)

    def test_password_field_rejected(self):
        response = self.put({'password': 'newpassword'}, user=self.bob)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['errno'], 0x33)

    def test_body_id_cannot_redirect_the_update(self):
        response = self.put({'id': self.alice.id, 'name': 'Hacked'}, user=self.bob)
        self.assertEqual(response.status_code, 400)
        self.alice.refresh_from_db()
        self.bob.refresh_from_db()
        self.assertEqual(self.alice.name, 'Alice')
        self.assertEqual(self.bob.name, 'Bob')

    def test_service_only_touches_caller(self):
        services.update_user(self.bob.id, {'name': 'Robert', 'id': self.alice.id})
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.name, 'Alice')
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.name, 'Robert')

    def test_username_taken(self):
        response = self.put({'username': 'alice'}, user=self.bob)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['message'], "Username is already taken.")
        self.alice.refresh_from_db()
        self.bob.refresh_from_db()
        self.assertEqual(self.alice.username, 'alice')
        self.assertEqual(self.bob.username, 'bob')

    def test_email_taken(self):
        response = self.put({'email': 'alice@example.com'}, user=self.bob)
        self.assertEqual(response.status_code, 409)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.email, 'bob@example.com')

    def test_keeping_own_username_is_fine(self):
        response = self.put({'username': 'bob', 'name': 'Bobby'}, user=self.bob)
        self.assertEqual(response.status_code, 201)

    def test_unique_index_is_final_word(self):
        """Two callers racing for one username: only the first write lands."""
        with mock.patch('users.services._check_unique'):
            services.update_user(self.alice.id, {'username': 'shared'})
            with self.assertRaises(Conflict):
                services.update_user(self.bob.id, {'username': 'shared'})
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.username, 'bob')
        self.assertEqual(User.objects.filter(username='shared').count(), 1)

    def test_empty_patch(self):
        response = self.put({}, user=self.bob)
        self.assertEqual(response.status_code, 400)

    def test_requires_token(self):
        response = self.put({'name': 'Nobody'})
        self.assertEqual(response.status_code, 401)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.name, 'Bob')

    def test_store_failure_during_uniqueness_lookup(self):
        with mock.patch.object(User.objects, 'filter', side_effect=DatabaseError("down")):
            response = self.put({'username': 'robert'}, user=self.bob)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['errno'], 0x80)

    def test_store_failure(self):
        with mock.patch.object(User, 'save', side_effect=DatabaseError("disk full")):
            response = self.put({'name': 'Robert'}, user=self.bob)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['errno'], 0x80)


class SignupTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.url = reverse('signup')
        self.valid_data = {
            'name': 'Carol',
            'username': 'carol',
            'email': 'carol@example.com',
            'password': 'carolpass123',
            'confirm_password': 'carolpass123',
        }

    def post(self, data):
        return self.client.post(self.url, data=json.dumps(data), content_type='application/json')

    def test_successful_signup(self):
        response = self.post(self.valid_data)
        self.assertEqual(response.status_code, 201)
        user = User.objects.get(email='carol@example.com')
        self.assertTrue(user.check_password('carolpass123'))
        self.assertNotEqual(user.password, 'carolpass123')
        token = response.json()['token']
        self.assertEqual(TokenIssuer.from_settings(get_auth_settings()).verify(token), user.id)

    def test_duplicate_username(self):
        make_user(username='carol', email='other@example.com')
        response = self.post(self.valid_data)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['errno'], 0x32)

    def test_duplicate_email(self):
        make_user(username='other', email='carol@example.com')
        response = self.post(self.valid_data)
        self.assertEqual(response.status_code, 409)

    def test_passwords_must_match(self):
        data = dict(self.valid_data, confirm_password='different123')
        response = self.post(data)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['errno'], 0x31)
        self.assertIn('confirm_password', response.json()['errors'])
        self.assertFalse(User.objects.filter(username='carol').exists())

    def test_unique_index_catches_racing_signup(self):
        """The insert itself reports the collision when the lookup missed it."""
        make_user(username='carol', email='other@example.com')
        issuer = TokenIssuer(SECRET)
        with mock.patch('users.services._check_unique'):
            with self.assertRaises(Conflict):
                services.signup('Carol', 'carol', 'carol@example.com', 'carolpass123', issuer)
        self.assertEqual(User.objects.filter(username='carol').count(), 1)
        self.assertFalse(User.objects.filter(email='carol@example.com').exists())

    def test_store_failure_during_lookup(self):
        with mock.patch.object(User.objects, 'filter', side_effect=DatabaseError("down")):
            with self.assertRaises(InternalError):
                services.signup('Carol', 'carol', 'carol@example.com', 'carolpass123', TokenIssuer(SECRET))

    def test_missing_fields(self):
        data = dict(self.valid_data)
        del data['username']
        response = self.post(data)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['errno'], 0x30)


class RouteGuardTests(TestCase):
    def test_cookie_on_login_redirects(self):
        self.assertEqual(decide_redirect('/login', True), '/dashboard')
        self.assertEqual(decide_redirect('/login/', True), '/dashboard')

    def test_no_cookie_passes_through(self):
        for path in ('/login', '/dashboard', '/anything'):
            self.assertIsNone(decide_redirect(path, False))

    def test_cookie_on_dashboard_passes_through(self):
        self.assertIsNone(decide_redirect('/dashboard', True))

    def test_middleware_redirects_with_cookie(self):
        client = Client()
        client.cookies['token'] = 'stale-or-forged'
        response = client.get('/login/')
        self.assertRedirects(response, '/dashboard', fetch_redirect_response=False)

    def test_middleware_redirects_on_empty_cookie(self):
        factory = RequestFactory()
        middleware = LoginRedirectMiddleware(lambda request: None)
        request = factory.get('/login')
        request.COOKIES['token'] = ''
        response = middleware(request)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], '/dashboard')

    def test_middleware_passes_through_without_cookie(self):
        factory = RequestFactory()
        sentinel = object()
        middleware = LoginRedirectMiddleware(lambda request: sentinel)
        self.assertIs(middleware(factory.get('/login')), sentinel)

    def test_middleware_ignores_unguarded_paths(self):
        factory = RequestFactory()
        sentinel = object()
        middleware = LoginRedirectMiddleware(lambda request: sentinel)
        request = factory.post('/api/login/')
        request.COOKIES['token'] = 'anything'
        self.assertIs(middleware(request), sentinel)
