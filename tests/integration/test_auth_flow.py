"""
Integration tests for login, registration and role checks.
"""


class TestLogin:

    def test_login_sets_session_user(self, client, vendedor):
        response = client.post('/auth/login', json={'email': 'vendedor@test.com', 'password': 'password123'})

        assert response.status_code == 200
        assert response.json['user']['email'] == 'vendedor@test.com'
        with client.session_transaction() as sess:
            assert sess['user_id'] == vendedor.id

    def test_wrong_password(self, client, vendedor):
        response = client.post('/auth/login', json={'email': 'vendedor@test.com', 'password': 'errada'})

        assert response.status_code == 401
        assert response.json['message'] == 'Email ou senha inválidos'

    def test_protected_route_requires_login(self, client):
        response = client.get('/products/')
        assert response.status_code == 401

    def test_me_and_logout(self, auth_client):
        assert auth_client.get('/auth/me').json['user']['role'] == 'vendedor'

        response = auth_client.post('/auth/logout')
        assert response.status_code == 200
        assert auth_client.get('/auth/me').status_code == 401


class TestRegister:

    def test_public_registration_creates_vendedor(self, client, session):
        response = client.post('/auth/register', json={
            'email': 'Nova@Test.com', 'password': 'segredo1', 'full_name': 'Nova Pessoa', 'role': 'admin',
        })

        assert response.status_code == 200
        assert response.json['user']['email'] == 'nova@test.com'
        assert response.json['user']['role'] == 'vendedor'

    def test_admin_can_register_admin(self, admin_client):
        response = admin_client.post('/auth/register', json={
            'email': 'gerente@test.com', 'password': 'segredo1', 'role': 'admin',
        })
        assert response.json['user']['role'] == 'admin'

    def test_duplicate_email(self, client, vendedor):
        response = client.post('/auth/register', json={'email': 'vendedor@test.com', 'password': 'segredo1'})

        assert response.status_code == 400
        assert response.json['message'] == 'Este email já está cadastrado'

    def test_short_password_and_bad_email(self, client, session):
        response = client.post('/auth/register', json={'email': 'invalido', 'password': '123'})

        assert response.status_code == 400
        assert 'Email inválido' in response.json['message']
        assert 'pelo menos 6 caracteres' in response.json['message']

    def test_password_confirmation_mismatch(self, client, session):
        response = client.post('/auth/register', json={
            'email': 'x@test.com', 'password': 'segredo1', 'password_confirm': 'segredo2',
        })
        assert response.status_code == 400
        assert response.json['message'] == 'As senhas não conferem'


class TestCli:

    def test_create_user_command(self, app, session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'create-user', '--email', 'caixa@test.com', '--password', 'segredo1',
            '--full-name', 'Caixa', '--role', 'admin',
        ])

        assert result.exit_code == 0
        assert 'Usuário criado com sucesso' in result.output
        user = app.extensions['pdv'].auth_service.sign_in('caixa@test.com', 'segredo1')
        assert user.is_admin
