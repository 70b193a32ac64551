# apps/board/tests/test_ordering.py

from django.test import SimpleTestCase

from apps.board.ordering import clamp_index, diff_positions, is_dense, move_in_sequence, reindex


class MoveInSequenceTests(SimpleTestCase):

    def test_mover_para_outra_lista(self):
        origem, destino = move_in_sequence(['a', 'T', 'b'], 'T', 0, ['c', 'd'])

        self.assertEqual(origem, ['a', 'b'])
        self.assertEqual(destino, ['T', 'c', 'd'])

    def test_reordenar_na_mesma_lista(self):
        nova, mesma = move_in_sequence(['X', 'Y', 'Z'], 'X', 2)

        self.assertEqual(nova, ['Y', 'Z', 'X'])
        self.assertIs(nova, mesma)

    def test_indice_refere_ao_array_sem_a_tarefa(self):
        # Z para o índice 0 e Y para o índice 1 em [X, Y, Z]
        self.assertEqual(move_in_sequence(['X', 'Y', 'Z'], 'Z', 0)[0], ['Z', 'X', 'Y'])
        self.assertEqual(move_in_sequence(['X', 'Y', 'Z'], 'X', 1)[0], ['Y', 'X', 'Z'])

    def test_indice_limitado(self):
        self.assertEqual(move_in_sequence(['X', 'Y'], 'Y', -3)[0], ['Y', 'X'])
        self.assertEqual(move_in_sequence(['X', 'Y'], 'X', 99)[0], ['Y', 'X'])
        self.assertEqual(move_in_sequence(['a'], 'a', 5, [])[1], ['a'])

    def test_sem_indice_vai_para_o_final(self):
        _, destino = move_in_sequence(['a'], 'a', None, ['c', 'd'])

        self.assertEqual(destino, ['c', 'd', 'a'])

    def test_entradas_nao_sao_alteradas(self):
        origem, destino = ['a', 'T'], ['c']

        move_in_sequence(origem, 'T', 0, destino)

        self.assertEqual(origem, ['a', 'T'])
        self.assertEqual(destino, ['c'])


class PositionHelpersTests(SimpleTestCase):

    def test_clamp_index(self):
        self.assertEqual(clamp_index(None, 3), 3)
        self.assertEqual(clamp_index(-1, 3), 0)
        self.assertEqual(clamp_index(7, 3), 3)
        self.assertEqual(clamp_index(2, 3), 2)

    def test_reindex(self):
        self.assertEqual(reindex([]), {})
        self.assertEqual(reindex([9, 4, 7]), {9: 0, 4: 1, 7: 2})

    def test_diff_positions_ignora_tarefas_inalteradas(self):
        antes = {1: ('A', 0), 2: ('A', 1), 3: ('A', 2), 4: ('B', 0), 5: ('B', 1)}
        arranjo = {'A': [1, 3], 'B': [2, 4, 5]}

        self.assertEqual(
            sorted(diff_positions(antes, arranjo)),
            [(2, 'B', 0), (3, 'A', 1), (4, 'B', 1), (5, 'B', 2)],
        )

    def test_diff_positions_mesma_posicao(self):
        antes = {1: ('A', 0), 2: ('A', 1)}

        self.assertEqual(diff_positions(antes, {'A': [1, 2]}), [])

    def test_is_dense(self):
        self.assertTrue(is_dense([]))
        self.assertTrue(is_dense([2, 0, 1]))
        self.assertFalse(is_dense([0, 2]))
        self.assertFalse(is_dense([0, 1, 1]))
